"""Text builders for product cards and order read-backs."""

from commerce_bot.schemas.collaborator_schema import ProductRecord
from commerce_bot.schemas.session_schema import Session


def format_price(price: float, currency_symbol: str) -> str:
    """Render a price without a trailing '.00' for whole amounts."""
    if float(price).is_integer():
        return f"{currency_symbol}{int(price)}"
    return f"{currency_symbol}{price:.2f}"


def build_product_caption(position: int, product: ProductRecord, currency_symbol: str) -> str:
    """Caption for one product card: name, category, price and delivery estimate."""
    lines = [
        f"{position}. {product.name}",
        f"Type: {product.category}",
        f"Price: {format_price(product.price, currency_symbol)}",
        f"Delivery: {product.delivery_days} days",
    ]
    if not product.available:
        lines.append("(currently low on stock)")
    return "\n".join(lines)


def build_order_summary(session: Session, currency_symbol: str) -> str:
    """Read back everything collected before the customer confirms."""
    session.require("selected_product", "selected_price", "size", "address", "pincode")
    lines = [
        "Here's your order:",
        f"  Product: {session.selected_product}",
        f"  Size: {session.size}",
        f"  Price: {format_price(session.selected_price, currency_symbol)}",
        f"  Deliver to: {session.address}",
        f"  Pincode: {session.pincode}",
    ]
    return "\n".join(lines)
