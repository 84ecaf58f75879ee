from datetime import datetime
from sqlalchemy import String, DateTime, Integer, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from fabnest.shared.db import Base, new_id, utcnow

FILE_TYPE_MODEL = "model"
FILE_TYPE_IMAGE = "image"

class File(Base):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    filename: Mapped[str] = mapped_column(String(255))   # original client filename
    path: Mapped[str] = mapped_column(Text)               # absolute path on disk
    url: Mapped[str] = mapped_column(String(500))         # public URL
    mime_type: Mapped[str] = mapped_column(String(127))
    file_type: Mapped[str] = mapped_column(String(16), index=True)  # model|image
    size: Mapped[int] = mapped_column(Integer)

    # filled for images only
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)

    uploaded_by: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    @property
    def download_url(self) -> str:
        return f"/admin/files/{self.id}/download"
