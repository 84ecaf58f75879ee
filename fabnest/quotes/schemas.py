from datetime import datetime
from typing import List, Optional
from pydantic import Field
from fabnest.shared.schemas import ApiModel
from fabnest.files.schemas import FileSummary

class CustomFileCreate(ApiModel):
    file_id: str = Field(min_length=1)
    material: str = Field(min_length=1, max_length=50)
    quality: str = Field(min_length=1, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=2000)

class CustomFileOut(ApiModel):
    id: str
    user_id: str
    file_id: str
    material: str
    quality: str
    notes: str | None = None
    status: str
    order_item_id: str | None = None
    created_at: datetime
    file: FileSummary

class QuoteRequestCreate(ApiModel):
    custom_file_id: str = Field(min_length=1)

class QuoteRequestUpdate(ApiModel):
    requested_price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    admin_notes: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[str] = None
    send_pi: bool = Field(default=False, alias="sendPI")

class QuoteRequestOut(ApiModel):
    id: str
    custom_file_id: str
    user_id: str
    status: str
    requested_price: float | None = None
    admin_notes: str | None = None
    admin_id: str | None = None
    admin_name: str | None = None
    quoted_at: datetime | None = None
    pi_send_attempted: bool
    pi_sent: bool
    pi_sent_at: datetime | None = None
    pi_last_error: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    custom_file: CustomFileOut

class QuoteRequestList(ApiModel):
    items: List[QuoteRequestOut]
    total: int
    limit: int
    offset: int

class CreateOrderFromQuote(ApiModel):
    shipping: float = Field(default=0, ge=0, allow_inf_nan=False)
    tax: float = Field(default=0, ge=0, allow_inf_nan=False)
