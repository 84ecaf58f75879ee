from datetime import datetime
from typing import List
from sqlalchemy import String, Boolean, DateTime, Float, Integer, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fabnest.shared.db import Base, new_id, utcnow
from fabnest.files.models import File
import json

class Product(Base):
    __tablename__ = "products"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    base_price: Mapped[float] = mapped_column(Float)
    category: Mapped[str] = mapped_column(String(100), index=True)
    # store tags as JSON text for SQLite; property dumps/loads list[str]
    tags_json: Mapped[str] = mapped_column(Text, default="[]")
    print_time: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    images: Mapped[List["ProductImage"]] = relationship(
        back_populates="product", cascade="all, delete-orphan", order_by="ProductImage.position"
    )

    @property
    def tags(self) -> list[str]:
        try:
            return json.loads(self.tags_json or "[]")
        except ValueError:
            return []

    @tags.setter
    def tags(self, val: list[str]):
        self.tags_json = json.dumps(val or [])

    @property
    def image(self) -> str:
        primary = next((img for img in self.images if img.is_primary), None) or next(iter(self.images), None)
        return primary.file.url if primary else ""

class ProductImage(Base):
    __tablename__ = "product_images"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(String(32), ForeignKey("products.id", ondelete="CASCADE"), index=True)
    file_id: Mapped[str] = mapped_column(String(32), ForeignKey("files.id"), index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    position: Mapped[int] = mapped_column(Integer, default=0)

    product: Mapped[Product] = relationship(back_populates="images")
    file: Mapped[File] = relationship(File, lazy="joined", innerjoin=True)

    @property
    def url(self) -> str:
        return self.file.url

class GalleryItem(Base):
    __tablename__ = "gallery_items"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    images: Mapped[List["GalleryImage"]] = relationship(
        back_populates="item", cascade="all, delete-orphan", order_by="GalleryImage.position"
    )

    @property
    def image(self) -> str:
        return self.images[0].file.url if self.images else ""

class GalleryImage(Base):
    __tablename__ = "gallery_images"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(String(32), ForeignKey("gallery_items.id", ondelete="CASCADE"), index=True)
    file_id: Mapped[str] = mapped_column(String(32), ForeignKey("files.id"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    item: Mapped[GalleryItem] = relationship(back_populates="images")
    file: Mapped[File] = relationship(File, lazy="joined", innerjoin=True)

    @property
    def url(self) -> str:
        return self.file.url
