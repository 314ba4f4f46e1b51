"""Tests for the availability -> payment -> record -> confirm pipeline."""

import asyncio

import pytest

from commerce_bot.conversation.order_pipeline import OrderOutcome, OrderPipeline
from commerce_bot.prompts.reply_composer import ReplyKind
from commerce_bot.schemas.session_schema import MissingSessionFieldError

from tests.conftest import confirm_ready_session, make_session


class ReplyLog:
    def __init__(self) -> None:
        self.entries: list[tuple[ReplyKind, dict]] = []

    async def __call__(self, kind, context=None) -> None:
        self.entries.append((kind, dict(context or {})))

    def kinds(self) -> list[ReplyKind]:
        return [kind for kind, _ in self.entries]


@pytest.fixture
def replies():
    return ReplyLog()


@pytest.fixture
def pipeline(backend, replies):
    return OrderPipeline(
        backend.collaborators(), replies,
        call_timeout=1.0, payment_method="gpay", order_id_factory=lambda: "order-42",
    )


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_all_four_steps(self, pipeline, backend, replies):
        result = await pipeline.run(confirm_ready_session())

        assert result.outcome == OrderOutcome.COMPLETED
        assert result.order_id == "order-42"
        assert result.recorded is True
        assert replies.kinds() == [
            ReplyKind.ITEM_AVAILABLE, ReplyKind.PAYMENT_CONFIRMED, ReplyKind.ORDER_CONFIRMED,
        ]

    @pytest.mark.asyncio
    async def test_requests_built_from_session(self, pipeline, backend):
        await pipeline.run(confirm_ready_session())

        availability = backend.calls["check_availability"][0]
        assert (availability.sku, availability.quantity, availability.pincode) == ("SKU-2", 1, "560001")

        payment = backend.calls["process_payment"][0]
        assert payment.amount_minor_units == 100200
        assert payment.method == "gpay"

        record = backend.calls["record_order"][0]
        assert record.items[0].sku == "SKU-2"
        assert record.address == "my house, pincode 560001"

    @pytest.mark.asyncio
    async def test_one_order_id_for_payment_record_and_confirmation(self, backend, replies):
        ids = iter(["order-a", "order-b"])
        pipeline = OrderPipeline(
            backend.collaborators(), replies,
            call_timeout=1.0, payment_method="gpay", order_id_factory=lambda: next(ids),
        )
        await pipeline.run(confirm_ready_session())

        assert backend.calls["process_payment"][0].order_id == "order-a"
        assert backend.calls["record_order"][0].order_id == "order-a"
        assert replies.entries[-1][1]["order_id"] == "order-a"

    @pytest.mark.asyncio
    async def test_confirmation_context(self, pipeline, replies):
        await pipeline.run(confirm_ready_session())
        _, context = replies.entries[-1]
        assert context == {
            "product_name": "Test Shoe 2",
            "pincode": "560001",
            "size": "9",
            "order_id": "order-42",
            "delivery_days": 3,
        }


class TestAvailabilityFailures:
    @pytest.mark.asyncio
    async def test_unavailable_stops_before_payment(self, pipeline, backend, replies):
        backend.available = False
        result = await pipeline.run(confirm_ready_session())

        assert result.outcome == OrderOutcome.UNAVAILABLE
        assert replies.kinds() == [ReplyKind.ITEM_UNAVAILABLE]
        assert backend.calls["process_payment"] == []

    @pytest.mark.asyncio
    async def test_availability_error_stops_before_payment(self, pipeline, backend, replies):
        backend.failing.add("check_availability")
        result = await pipeline.run(confirm_ready_session())

        assert result.outcome == OrderOutcome.UNAVAILABLE
        assert replies.entries == [(ReplyKind.SERVICE_ERROR, {"service": "inventory"})]
        assert backend.calls["process_payment"] == []


class TestPaymentFailures:
    @pytest.mark.asyncio
    async def test_declined(self, pipeline, backend, replies):
        backend.payment_ok = False
        result = await pipeline.run(confirm_ready_session())

        assert result.outcome == OrderOutcome.PAYMENT_FAILED
        assert replies.kinds() == [ReplyKind.ITEM_AVAILABLE, ReplyKind.PAYMENT_FAILED]
        assert backend.calls["record_order"] == []

    @pytest.mark.asyncio
    async def test_payment_error(self, pipeline, backend, replies):
        backend.failing.add("process_payment")
        result = await pipeline.run(confirm_ready_session())

        assert result.outcome == OrderOutcome.PAYMENT_FAILED
        assert ReplyKind.ORDER_CONFIRMED not in replies.kinds()

    @pytest.mark.asyncio
    async def test_payment_timeout(self, backend, replies):
        async def hang(request):
            await asyncio.sleep(5)

        collaborators = backend.collaborators()
        collaborators.process_payment = hang
        pipeline = OrderPipeline(collaborators, replies, call_timeout=0.01, payment_method="gpay")
        result = await pipeline.run(confirm_ready_session())
        assert result.outcome == OrderOutcome.PAYMENT_FAILED


class TestRecordFailures:
    @pytest.mark.asyncio
    async def test_recorder_error_still_confirms(self, pipeline, backend, replies, caplog):
        backend.failing.add("record_order")
        result = await pipeline.run(confirm_ready_session())

        assert result.outcome == OrderOutcome.COMPLETED
        assert result.recorded is False
        assert replies.kinds()[-1] == ReplyKind.ORDER_CONFIRMED
        assert "could not be recorded" in caplog.text

    @pytest.mark.asyncio
    async def test_recorder_decline_still_confirms(self, pipeline, backend, replies):
        backend.record_ok = False
        result = await pipeline.run(confirm_ready_session())

        assert result.outcome == OrderOutcome.COMPLETED
        assert result.recorded is False
        assert replies.kinds()[-1] == ReplyKind.ORDER_CONFIRMED


class TestPreconditions:
    @pytest.mark.asyncio
    async def test_incomplete_session_rejected(self, pipeline, backend):
        with pytest.raises(MissingSessionFieldError):
            await pipeline.run(make_session(selected_sku="SKU-1"))
        assert backend.call_count() == 0


class TestPaidCallback:
    def paid_pipeline(self, backend, replies, paid):
        return OrderPipeline(
            backend.collaborators(), replies,
            call_timeout=1.0, payment_method="gpay", order_id_factory=lambda: "order-42",
            on_paid=lambda: paid.append(len(backend.calls["record_order"])),
        )

    @pytest.mark.asyncio
    async def test_fires_once_before_recording(self, backend, replies):
        paid: list[int] = []
        await self.paid_pipeline(backend, replies, paid).run(confirm_ready_session())
        assert paid == [0]
        assert replies.kinds() == [
            ReplyKind.ITEM_AVAILABLE, ReplyKind.PAYMENT_CONFIRMED, ReplyKind.ORDER_CONFIRMED,
        ]

    @pytest.mark.asyncio
    async def test_fires_even_when_recording_fails(self, backend, replies):
        backend.failing.add("record_order")
        paid: list[int] = []
        await self.paid_pipeline(backend, replies, paid).run(confirm_ready_session())
        assert paid == [0]

    @pytest.mark.asyncio
    async def test_not_fired_when_payment_declined(self, backend, replies):
        backend.payment_ok = False
        paid: list[int] = []
        await self.paid_pipeline(backend, replies, paid).run(confirm_ready_session())
        assert paid == []

    @pytest.mark.asyncio
    async def test_not_fired_when_unavailable(self, backend, replies):
        backend.available = False
        paid: list[int] = []
        await self.paid_pipeline(backend, replies, paid).run(confirm_ready_session())
        assert paid == []
        assert backend.calls["process_payment"] == []
