"""
Order pipeline run when the customer confirms an order.

Four sequential steps: availability -> payment -> record -> confirm.
Failures short-circuit, but not symmetrically:

- availability unavailable or failed: notify, caller resets the session
- payment declined or failed: notify, session stays in CONFIRM_ORDER so
  the customer can say "yes" again
- recording failed after payment: logged only, the customer still sees
  the order confirmation

Nothing is rolled back. A payment that succeeded stays taken even when
the order record could not be written. ``on_paid`` fires as soon as the
payment succeeds, before anything else can fail, so the caller can drop
the stored session and a repeated "yes" never charges twice.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from commerce_bot.conversation.collaborators import Collaborators, CollaboratorError, call_collaborator
from commerce_bot.logging_context import get_chat_logger
from commerce_bot.prompts.reply_composer import ReplyKind
from commerce_bot.schemas.collaborator_schema import (
    AvailabilityRequest,
    AvailabilityResult,
    OrderLine,
    OrderRecordRequest,
    OrderRecordResult,
    PaymentRequest,
    PaymentResult,
)
from commerce_bot.schemas.session_schema import Session
from commerce_bot.utils import new_order_id, to_minor_units

logger = get_chat_logger(__name__)

ORDER_QUANTITY = 1

Reply = Callable[[ReplyKind, Mapping[str, Any]], Awaitable[None]]


class OrderOutcome(str, Enum):
    COMPLETED = "completed"
    UNAVAILABLE = "unavailable"
    PAYMENT_FAILED = "payment_failed"


@dataclass
class OrderResult:
    outcome: OrderOutcome
    order_id: Optional[str] = None
    recorded: bool = False


class OrderPipeline:
    """Runs the four order steps for one confirmed session."""

    def __init__(
        self,
        collaborators: Collaborators,
        reply: Reply,
        *,
        call_timeout: float,
        payment_method: str,
        order_id_factory: Callable[[], str] = new_order_id,
        on_paid: Optional[Callable[[], None]] = None,
    ) -> None:
        self._collaborators = collaborators
        self._reply = reply
        self._call_timeout = call_timeout
        self._payment_method = payment_method
        self._order_id_factory = order_id_factory
        self._on_paid = on_paid

    async def run(self, session: Session) -> OrderResult:
        session.require("selected_sku", "selected_product", "selected_price", "size", "address", "pincode")
        context = {
            "product_name": session.selected_product,
            "pincode": session.pincode,
            "size": session.size,
        }

        # 1. Availability
        try:
            availability = await call_collaborator(
                "inventory",
                self._collaborators.check_availability(AvailabilityRequest(
                    sku=session.selected_sku, quantity=ORDER_QUANTITY, pincode=session.pincode,
                )),
                AvailabilityResult,
                self._call_timeout,
            )
        except CollaboratorError:
            await self._reply(ReplyKind.SERVICE_ERROR, {"service": "inventory"})
            return OrderResult(OrderOutcome.UNAVAILABLE)

        if not availability.ok or not availability.available:
            logger.info("SKU %s unavailable for %s: %s", session.selected_sku, session.pincode, availability.message)
            await self._reply(ReplyKind.ITEM_UNAVAILABLE, context)
            return OrderResult(OrderOutcome.UNAVAILABLE)
        await self._reply(ReplyKind.ITEM_AVAILABLE, context)

        # 2. Payment
        order_id = self._order_id_factory()
        try:
            payment = await call_collaborator(
                "payment",
                self._collaborators.process_payment(PaymentRequest(
                    order_id=order_id,
                    amount_minor_units=to_minor_units(session.selected_price),
                    method=self._payment_method,
                )),
                PaymentResult,
                self._call_timeout,
            )
        except CollaboratorError:
            payment = None

        if payment is None or not payment.ok:
            logger.warning("Payment failed for order %s", order_id)
            await self._reply(ReplyKind.PAYMENT_FAILED, context)
            return OrderResult(OrderOutcome.PAYMENT_FAILED, order_id=order_id)
        if self._on_paid is not None:
            self._on_paid()

        # 3. Record. Failure here does not undo the payment.
        recorded = False
        try:
            record = await call_collaborator(
                "fulfillment",
                self._collaborators.record_order(OrderRecordRequest(
                    order_id=order_id,
                    items=[OrderLine(sku=session.selected_sku, qty=ORDER_QUANTITY)],
                    address=session.address,
                    pincode=session.pincode,
                )),
                OrderRecordResult,
                self._call_timeout,
            )
            recorded = record.ok
        except CollaboratorError as exc:
            logger.error("Order %s was paid but could not be recorded: %s", order_id, exc)
        else:
            if not recorded:
                logger.error("Order %s was paid but the recorder declined it: %s", order_id, record.message)

        # 4. Confirm
        await self._reply(ReplyKind.PAYMENT_CONFIRMED, {"confirmation_text": payment.confirmation_text})
        await self._reply(ReplyKind.ORDER_CONFIRMED, {
            **context,
            "order_id": order_id,
            "delivery_days": session.selected_delivery_days,
        })
        logger.info("Order %s completed for SKU %s", order_id, session.selected_sku)
        return OrderResult(OrderOutcome.COMPLETED, order_id=order_id, recorded=recorded)
