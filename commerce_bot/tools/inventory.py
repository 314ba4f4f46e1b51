"""
Stock availability check across the shop floor and the stockroom.

In production this would call a warehouse or store-inventory API and
consider the delivery pincode for routing; here the pincode is only
echoed back in the message.
"""

import logging
from typing import Optional

from commerce_bot.schemas.collaborator_schema import AvailabilityRequest, AvailabilityResult
from commerce_bot.tools.catalog import CatalogStore

logger = logging.getLogger(__name__)


def check_inventory(
    request: AvailabilityRequest, catalog: Optional[CatalogStore] = None
) -> AvailabilityResult:
    """Check whether combined stock meets the requested quantity."""
    catalog = catalog or CatalogStore()
    item = catalog.get_stock(request.sku)
    if item is None:
        logger.warning("Inventory lookup for unknown SKU %s", request.sku)
        return AvailabilityResult(ok=False, message=f"Item {request.sku} not found")

    available = item.total_qty >= request.quantity
    return AvailabilityResult(
        ok=True,
        available=available,
        name=item.name,
        store_qty=item.store_qty,
        stockroom_qty=item.stockroom_qty,
        message=(
            f"Available near {request.pincode}"
            if available
            else f"Out of stock near {request.pincode}"
        ),
    )
