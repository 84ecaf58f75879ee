from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from fabnest.shared.schemas import ApiModel

# bcrypt refuses anything longer
MAX_PASSWORD_BYTES = 72

def _password_fits(v: str | None) -> str | None:
    if v is not None and len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v

class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=MAX_PASSWORD_BYTES)
    name: str = Field(min_length=1, max_length=255)

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, v):
        return _password_fits(v)

class LoginIn(BaseModel):
    email: EmailStr
    password: str

class UserOut(ApiModel):
    id: str
    email: str
    name: str
    role: str
    created_at: datetime

class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6, max_length=MAX_PASSWORD_BYTES)
    role: Optional[Literal["user", "admin"]] = None

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, v):
        return _password_fits(v)

class UserList(ApiModel):
    items: List[UserOut]
    total: int
    limit: int
    offset: int
