"""
Order recorder: appends each placed order to a JSON array file.

There is no transaction around the write and no durability beyond the
file itself. The lock only stops two chats in this process from
interleaving their read-modify-write.
"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from commerce_bot.config import settings
from commerce_bot.schemas.collaborator_schema import OrderRecordRequest, OrderRecordResult

logger = logging.getLogger(__name__)

_write_lock = threading.Lock()


def record_order(
    request: OrderRecordRequest, path: Optional[Union[str, Path]] = None
) -> OrderRecordResult:
    """Append the order with a ``created_at`` UTC timestamp. Creates the file when missing."""
    target = Path(path or settings.backend.fulfillment_path)
    entry = request.model_dump()
    entry["created_at"] = datetime.now(timezone.utc).isoformat()

    with _write_lock:
        records: list[dict] = []
        if target.exists():
            records = json.loads(target.read_text(encoding="utf-8") or "[]")
        records.append(entry)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(records, indent=2), encoding="utf-8")

    logger.info("Order %s recorded to %s", request.order_id, target)
    return OrderRecordResult(ok=True, message=f"Order {request.order_id} saved")


def load_orders(path: Optional[Union[str, Path]] = None) -> list[dict]:
    """Read back every recorded order."""
    target = Path(path or settings.backend.fulfillment_path)
    if not target.exists():
        return []
    return json.loads(target.read_text(encoding="utf-8") or "[]")
