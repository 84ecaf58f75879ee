from datetime import datetime
from typing import Optional
from sqlalchemy import String, Boolean, DateTime, Float, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fabnest.shared.db import Base, new_id, utcnow
from fabnest.files.models import File

QUOTE_PENDING = "pending"
QUOTE_QUOTED = "quoted"
QUOTE_ACCEPTED = "accepted"
QUOTE_REJECTED = "rejected"
QUOTE_STATUSES = (QUOTE_PENDING, QUOTE_QUOTED, QUOTE_ACCEPTED, QUOTE_REJECTED)
QUOTE_TERMINAL = (QUOTE_ACCEPTED, QUOTE_REJECTED)

class CustomOrderFile(Base):
    """A user's uploaded model plus the print parameters they asked for."""
    __tablename__ = "custom_order_files"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    file_id: Mapped[str] = mapped_column(String(32), ForeignKey("files.id"), index=True)
    material: Mapped[str] = mapped_column(String(50))
    quality: Mapped[str] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending")
    # set once, when the file is ordered; unique so two orders can never share it
    order_item_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("order_items.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    file: Mapped[File] = relationship(File, lazy="joined", innerjoin=True)
    quote_request: Mapped[Optional["QuoteRequest"]] = relationship(
        back_populates="custom_file", cascade="all, delete-orphan", uselist=False
    )

class QuoteRequest(Base):
    __tablename__ = "quote_requests"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    custom_file_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("custom_order_files.id", ondelete="CASCADE"), unique=True
    )
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id", ondelete="CASCADE"), index=True)
    status: Mapped[str] = mapped_column(String(16), default=QUOTE_PENDING, index=True)  # pending|quoted|accepted|rejected
    requested_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    admin_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # PI e-mail bookkeeping: an attempt is not a delivery
    pi_send_attempted: Mapped[bool] = mapped_column(Boolean, default=False)
    pi_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    pi_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    pi_last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    custom_file: Mapped[CustomOrderFile] = relationship(back_populates="quote_request", lazy="joined", innerjoin=True)
