# fabnest/auth/api.py
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from fabnest.shared.db import get_db
from fabnest.shared.auth import CurrentUser, create_access_token, get_user
from fabnest.shared.errors import NotFound, Unauthorized
from fabnest.shared.http import ok
from fabnest.auth.models import User
from fabnest.auth.schemas import LoginIn, RegisterIn, UserOut
from fabnest.auth.service import register_user, authenticate_user

router = APIRouter(prefix="/auth", tags=["Auth"])

def _token_for(user: User) -> str:
    return create_access_token(sub=user.id, email=user.email, role=user.role)

@router.post("/register", status_code=201)
def api_register(inb: RegisterIn, db: Session = Depends(get_db)):
    user = register_user(db, inb.email, inb.password, inb.name)
    return ok(token=_token_for(user), user=UserOut.model_validate(user))

@router.post("/login")
def api_login(inb: LoginIn, db: Session = Depends(get_db)):
    user = authenticate_user(db, inb.email, inb.password)
    if not user:
        raise Unauthorized("Invalid email or password")
    return ok(token=_token_for(user), user=UserOut.model_validate(user))

@router.post("/token")
def api_token(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    # OAuth2 password flow for the Swagger 'Authorize' button
    user = authenticate_user(db, form.username, form.password)
    if not user:
        raise Unauthorized("Invalid email or password")
    return {"access_token": _token_for(user), "token_type": "bearer"}

@router.get("/me")
def api_me(user: CurrentUser = Depends(get_user), db: Session = Depends(get_db)):
    row = db.get(User, user.sub)
    if not row:
        raise NotFound("User not found")
    return ok(user=UserOut.model_validate(row))
