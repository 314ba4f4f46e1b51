"""Shared utilities used across the commerce bot."""

import re
import time
import uuid


def normalize_text(value: str) -> str:
    """Lower-case a message and collapse runs of whitespace.

    Examples:
        >>> normalize_text("  Sports   SHOES ")
        'sports shoes'
    """
    return re.sub(r"\s+", " ", value).strip().lower()


def to_minor_units(price: float) -> int:
    """Convert a display price (e.g. rupees) to integer minor units (paise).

    Examples:
        >>> to_minor_units(1299)
        129900
        >>> to_minor_units(499.5)
        49950
    """
    return int(round(price * 100))


def new_order_id() -> str:
    """Generate a unique order identifier: millisecond timestamp plus a random suffix."""
    return f"order-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
