"""
JSON-file catalog and stock store.

Reads product_catalog.json and inventory.json from a data directory. Files
are re-read on every call so edits to the data show up without a restart.
In production this would be a product database or a commerce platform API.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from commerce_bot.config import settings
from commerce_bot.schemas.catalog_schema import InventoryItem, Product

logger = logging.getLogger(__name__)

CATALOG_FILE = "product_catalog.json"
INVENTORY_FILE = "inventory.json"


class CatalogStore:
    """Read-only access to products and on-hand quantities."""

    def __init__(self, data_dir: Optional[Union[str, Path]] = None) -> None:
        self.data_dir = Path(data_dir or settings.backend.data_dir)

    def _read(self, filename: str, key: str) -> list[dict]:
        path = self.data_dir / filename
        with path.open(encoding="utf-8") as fh:
            payload = json.load(fh)
        return payload[key]

    def products(self) -> list[Product]:
        """All catalog products, in file order."""
        return [Product.model_validate(p) for p in self._read(CATALOG_FILE, "products")]

    def inventory(self) -> dict[str, InventoryItem]:
        """Stock records keyed by SKU."""
        items = [InventoryItem.model_validate(i) for i in self._read(INVENTORY_FILE, "items")]
        return {item.sku: item for item in items}

    def get_product(self, sku: str) -> Optional[Product]:
        for product in self.products():
            if product.sku == sku:
                return product
        return None

    def get_stock(self, sku: str) -> Optional[InventoryItem]:
        return self.inventory().get(sku)
