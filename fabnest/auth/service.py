import logging
import bcrypt
from sqlalchemy.orm import Session
from fabnest.auth.models import User
from fabnest.shared.errors import Conflict

logger = logging.getLogger(__name__)

def hash_password(pw: str) -> str:
    return bcrypt.hashpw(pw.encode(), bcrypt.gensalt()).decode()

def verify_password(pw: str, ph: str) -> bool:
    try: return bcrypt.checkpw(pw.encode(), ph.encode())
    except ValueError: return False

def normalize_email(email: str) -> str:
    return email.lower().strip()

def find_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()

def register_user(db: Session, email: str, password: str, name: str, role: str = "user") -> User:
    email = normalize_email(email)
    if find_by_email(db, email):
        raise Conflict("Email already registered")
    u = User(email=email, name=name.strip(), password_hash=hash_password(password), role=role)
    db.add(u); db.commit(); db.refresh(u)
    logger.info("Registered user %s (%s)", u.id, role)
    return u

def authenticate_user(db: Session, email: str, password: str) -> User | None:
    u = find_by_email(db, email)
    if not u or not verify_password(password, u.password_hash):
        return None
    return u
