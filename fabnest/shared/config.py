# fabnest/shared/config.py
from pathlib import Path
from pydantic import BaseModel
import os

ROOT = Path(__file__).resolve().parents[2]   # project root
STORAGE_ROOT = ROOT / "storage"

class Settings(BaseModel):
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", f"sqlite:///{(STORAGE_ROOT / 'fabnest.db').as_posix()}"
    )

    # uploaded bytes live under STORAGE_DIR/<category>/...
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", str(STORAGE_ROOT / "public"))
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(100 * 1024 * 1024)))

    # JWT settings
    JWT_KEY: str = os.getenv("JWT_KEY", "dev-secret")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")
    JWT_ISS: str | None = os.getenv("JWT_ISS")
    JWT_AUD: str | None = os.getenv("JWT_AUD")
    JWT_EXPIRE_MIN: int = int(os.getenv("JWT_EXPIRE_MIN", str(7 * 24 * 60)))

    # PI e-mails: dry-run writes them to the outbox instead of delivering
    EMAIL_DRY_RUN: bool = os.getenv("EMAIL_DRY_RUN", "true").lower() == "true"
    EMAIL_OUTBOX_DIR: str = os.getenv("EMAIL_OUTBOX_DIR", str(STORAGE_ROOT / "outbox"))
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "noreply@fabnest3d.com")
    CURRENCY: str = os.getenv("CURRENCY", "LKR")

    @property
    def is_dev(self) -> bool:
        return self.ENV == "dev"

settings = Settings()
