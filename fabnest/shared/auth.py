# fabnest/shared/auth.py
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError  # python-jose[cryptography]
from pydantic import BaseModel

from fabnest.shared.config import settings
from fabnest.shared.errors import Forbidden, Unauthorized

bearer = HTTPBearer(auto_error=False, scheme_name="bearerAuth")

ROLE_USER = "user"
ROLE_ADMIN = "admin"

class CurrentUser(BaseModel):
    """Identity resolved from the bearer token for the current request."""
    sub: str
    email: str = ""
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

def create_access_token(
    sub: str,
    email: str = "",
    role: str = ROLE_USER,
    extra: Optional[Dict[str, Any]] = None,
    minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=minutes or settings.JWT_EXPIRE_MIN)
    payload: Dict[str, Any] = {
        "sub": sub,
        "email": email,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    if settings.JWT_ISS:
        payload["iss"] = settings.JWT_ISS
    if settings.JWT_AUD:
        payload["aud"] = settings.JWT_AUD
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.JWT_KEY, algorithm=settings.JWT_ALG)

def decode_token(token: str) -> CurrentUser:
    try:
        payload = jwt.decode(
            token,
            settings.JWT_KEY,
            algorithms=[settings.JWT_ALG],
            audience=settings.JWT_AUD,
            issuer=settings.JWT_ISS,
            options={
                "verify_aud": bool(settings.JWT_AUD),
                "verify_iss": bool(settings.JWT_ISS),
            },
        )
    except JWTError as e:
        raise Unauthorized(f"invalid token: {e}")

    sub = payload.get("sub")
    if not sub:
        raise Unauthorized("invalid token: missing sub")

    return CurrentUser(sub=sub, email=payload.get("email") or "", role=payload.get("role", ROLE_USER))

def get_user(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> CurrentUser:
    # Always require a bearer token
    if not creds:
        raise Unauthorized("Unauthorized")
    return decode_token(creds.credentials)

def require_admin(user: CurrentUser = Depends(get_user)) -> CurrentUser:
    if not user.is_admin:
        raise Forbidden("Forbidden")
    return user
