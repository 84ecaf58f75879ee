from datetime import datetime
from typing import Annotated, List, Optional
from pydantic import Field
from fabnest.shared.schemas import ApiModel
from fabnest.files.schemas import FileSummary

Money = Annotated[float, Field(ge=0, allow_inf_nan=False)]

class OrderItemIn(ApiModel):
    product_id: Optional[str] = None
    product_name: str = Field(min_length=1, max_length=255)
    material: str = Field(min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=50)
    size: str = Field(min_length=1, max_length=50)
    quantity: int = Field(ge=1)
    unit_price: Money
    total_price: Money
    is_custom: bool = False
    custom_file_id: Optional[str] = None

class OrderCreate(ApiModel):
    items: List[OrderItemIn] = Field(min_length=1)
    subtotal: Money
    shipping: Money
    tax: Money
    total: Money

class OrderUpdate(ApiModel):
    status: Optional[str] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None

class OrderCustomFileOut(ApiModel):
    id: str
    material: str
    quality: str
    notes: str | None = None
    file: FileSummary

class OrderItemOut(ApiModel):
    id: str
    product_id: str | None = None
    product_name: str
    material: str
    color: str | None = None
    size: str
    quantity: int
    unit_price: float
    total_price: float
    is_custom: bool
    product_image: str | None = None
    custom_file_url: str | None = None
    custom_file: OrderCustomFileOut | None = None

class OrderOut(ApiModel):
    id: str
    user_id: str
    status: str
    subtotal: float
    shipping: float
    tax: float
    total: float
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    items: List[OrderItemOut]

class OrderList(ApiModel):
    items: List[OrderOut]
    total: int
    limit: int
    offset: int
