"""Catalog and stock data models."""

from typing import Optional

from pydantic import BaseModel, Field

from commerce_bot.config import settings


class Product(BaseModel):
    """A catalog entry as stored in product_catalog.json."""
    sku: str
    name: str
    type: str
    gender: str = "unisex"
    price: float = Field(ge=0)
    image_url: str = ""
    delivery_days: int = Field(default_factory=lambda: settings.store.default_delivery_days, ge=0)
    description: Optional[str] = None


class InventoryItem(BaseModel):
    """On-hand quantity for one SKU, split across the shop floor and the stockroom."""
    sku: str
    name: str
    store_qty: int = Field(default=0, ge=0)
    stockroom_qty: int = Field(default=0, ge=0)

    @property
    def total_qty(self) -> int:
        return self.store_qty + self.stockroom_qty
