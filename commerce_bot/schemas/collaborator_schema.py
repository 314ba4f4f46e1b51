"""Request/response records exchanged with the backend collaborators.

Each collaborator operation has an explicit request and response model.
Responses are validated here at the boundary, so a collaborator that
returns a malformed payload fails loudly instead of leaking half-shaped
data into the conversation.
"""

from typing import Optional

from pydantic import BaseModel, Field

from commerce_bot.config import settings


PINCODE_PATTERN = r"^\d{6}$"


class ProductQuery(BaseModel):
    """findProducts input."""
    query: str = ""
    category: Optional[str] = None
    gender: Optional[str] = None
    limit: int = Field(default=3, ge=1)
    offset: int = Field(default=0, ge=0)


class ProductRecord(BaseModel):
    """One product on a result page."""
    sku: str
    name: str
    category: str
    gender: str
    price: float = Field(ge=0)
    image_url: str = ""
    delivery_days: int = Field(default_factory=lambda: settings.store.default_delivery_days, ge=0)
    available: bool = True


class ProductPage(BaseModel):
    """findProducts output: one page plus whether more results exist past it."""
    items: list[ProductRecord] = Field(default_factory=list)
    has_more: bool = False


class AvailabilityRequest(BaseModel):
    sku: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    pincode: str = Field(pattern=PINCODE_PATTERN)


class AvailabilityResult(BaseModel):
    ok: bool
    available: bool = False
    name: str = ""
    store_qty: int = 0
    stockroom_qty: int = 0
    message: str = ""


class PaymentRequest(BaseModel):
    order_id: str = Field(min_length=1)
    amount_minor_units: int = Field(ge=0)
    method: str = Field(min_length=1)


class PaymentResult(BaseModel):
    ok: bool
    confirmation_text: str = ""


class OrderLine(BaseModel):
    sku: str = Field(min_length=1)
    qty: int = Field(default=1, ge=1)


class OrderRecordRequest(BaseModel):
    order_id: str = Field(min_length=1)
    items: list[OrderLine] = Field(min_length=1)
    address: str
    pincode: str = Field(pattern=PINCODE_PATTERN)


class OrderRecordResult(BaseModel):
    ok: bool
    message: str = ""
