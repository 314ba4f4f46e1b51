"""
Simulated payment processor.

No money moves. In production this would create a UPI collect request or
a payment-gateway order and wait for the webhook.
"""

import logging

from commerce_bot.schemas.collaborator_schema import PaymentRequest, PaymentResult

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = frozenset({"gpay", "upi", "card"})

METHOD_LABELS: dict[str, str] = {
    "gpay": "Google Pay",
    "upi": "UPI",
    "card": "card",
}


def process_payment(request: PaymentRequest) -> PaymentResult:
    """Simulate a payment. Fails for unsupported methods or a zero amount."""
    method = request.method.lower()
    if method not in SUPPORTED_METHODS:
        logger.warning("Payment for %s rejected: unsupported method %r", request.order_id, request.method)
        return PaymentResult(ok=False, confirmation_text=f"Payment method {request.method} is not supported.")
    if request.amount_minor_units <= 0:
        logger.warning("Payment for %s rejected: non-positive amount", request.order_id)
        return PaymentResult(ok=False, confirmation_text="Payment amount must be positive.")

    logger.info(
        "Simulated payment for order %s: %d via %s",
        request.order_id, request.amount_minor_units, method,
    )
    return PaymentResult(
        ok=True,
        confirmation_text=f"Payment simulated. Please complete it on {METHOD_LABELS[method]}.",
    )
