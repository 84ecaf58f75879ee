from datetime import datetime, timezone
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
import uuid

from fabnest.shared.config import settings

# Local SQLite DB under ./storage/ (created if missing)
if settings.DATABASE_URL.startswith("sqlite:///"):
    Path(settings.DATABASE_URL[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

class Base(DeclarativeBase):
    pass

def new_id() -> str:
    return uuid.uuid4().hex  # 32 chars

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

# FastAPI dep
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
