from datetime import datetime
from typing import List, Optional
from pydantic import Field
from fabnest.shared.schemas import ApiModel

class ImageOut(ApiModel):
    id: str
    file_id: str
    url: str
    position: int

class ProductImageOut(ImageOut):
    is_primary: bool

class ProductCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    base_price: float = Field(ge=0, allow_inf_nan=False)
    category: str = Field(min_length=1, max_length=100)
    tags: List[str] = Field(default_factory=list, max_length=20)
    print_time: Optional[str] = Field(default=None, max_length=50)
    image_file_ids: List[str] = Field(default_factory=list)

class ProductUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    base_price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    tags: Optional[List[str]] = Field(default=None, max_length=20)
    print_time: Optional[str] = Field(default=None, max_length=50)
    image_file_id: Optional[str] = None

class ProductOut(ApiModel):
    id: str
    name: str
    description: str
    base_price: float
    category: str
    tags: List[str]
    print_time: str | None = None
    image: str
    images: List[ProductImageOut]
    created_at: datetime

class GalleryItemCreate(ApiModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    category: Optional[str] = Field(default=None, max_length=100)
    image_file_ids: List[str] = Field(default_factory=list)

class GalleryItemOut(ApiModel):
    id: str
    title: str
    description: str
    category: str | None = None
    image: str
    images: List[ImageOut]
    created_at: datetime
