"""End-to-end ordering dialogues against the bundled catalog and a temp fulfillment file."""

import pytest

from commerce_bot.config import PACKAGE_DATA_DIR
from commerce_bot.conversation.collaborators import local_collaborators
from commerce_bot.conversation.engine import ConversationEngine
from commerce_bot.prompts.reply_composer import ReplyKind
from commerce_bot.schemas.session_schema import ConversationStage
from commerce_bot.tools.fulfillment import load_orders

from tests.conftest import RecordingSink

CHAT = "555"


@pytest.fixture
def orders_path(tmp_path):
    return tmp_path / "fulfillments.json"


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def engine(sink, orders_path):
    return ConversationEngine(
        local_collaborators(data_dir=PACKAGE_DATA_DIR, fulfillment_path=orders_path),
        sink,
        page_size=3,
        call_timeout=5.0,
        payment_method="gpay",
    )


async def play(engine, steps):
    for step in steps:
        await engine.handle_message(CHAT, step)


class TestOrderScenario:
    @pytest.mark.asyncio
    async def test_sports_shoes_for_a_boy(self, engine, sink, orders_path):
        await play(engine, ["I want sports shoes for a boy"])
        cards = [m for m in sink.messages if m.kind == ReplyKind.PRODUCT_CARD]
        assert [c.text.splitlines()[0] for c in cards] == [
            "1. Stride Runner Pro", "2. Velocity Trainer", "3. AeroFlex Unisex Jogger",
        ]
        assert sink.last().kind == ReplyKind.SELECT_OR_MORE

        await play(engine, ["2", "size 9", "12 MG Road, Bengaluru, pincode 560001"])
        summary = sink.last()
        assert summary.kind == ReplyKind.ORDER_SUMMARY
        assert "Velocity Trainer" in summary.text
        assert "₹1899" in summary.text

        await play(engine, ["yes"])
        assert sink.count(ReplyKind.ORDER_CONFIRMED) == 1
        confirmation = sink.last().text
        assert "Velocity Trainer" in confirmation
        assert "about 4 days" in confirmation
        assert engine.get_session(CHAT) is None

        orders = load_orders(orders_path)
        assert len(orders) == 1
        assert orders[0]["items"] == [{"sku": "SPT-102", "qty": 1}]
        assert orders[0]["pincode"] == "560001"
        assert orders[0]["order_id"] in confirmation


class TestBrowseScenario:
    @pytest.mark.asyncio
    async def test_office_shoes_for_women(self, engine, sink):
        await play(engine, ["hi", "something for the office"])
        assert sink.kinds() == [ReplyKind.ASK_CATEGORY, ReplyKind.ASK_GENDER]

        await play(engine, ["for women"])
        cards = [m for m in sink.messages if m.kind == ReplyKind.PRODUCT_CARD]
        assert len(cards) == 1
        assert cards[0].image_url.endswith("frm-203.jpg")
        assert sink.last().kind == ReplyKind.SELECT_PRODUCT

        await play(engine, ["more"])
        assert sink.last().kind == ReplyKind.NO_MORE_PRODUCTS

        await play(engine, ["Grace Pump"])
        assert sink.last().kind == ReplyKind.ASK_SIZE
        assert engine.get_session(CHAT).selected_sku == "FRM-203"

        await play(engine, ["restart"])
        assert sink.last().kind == ReplyKind.RESTARTED
        assert engine.get_stage(CHAT) == ConversationStage.FOOTWEAR_TYPE


class TestCancelScenario:
    @pytest.mark.asyncio
    async def test_declined_slipper_order_writes_nothing(self, engine, sink, orders_path):
        await play(engine, ["slippers for me", "1", "8", "Flat 4B, Lake View Apartments 400050"])
        session = engine.get_session(CHAT)
        assert session.selected_sku == "SLP-401"
        assert session.pincode == "400050"

        await play(engine, ["no, cancel it"])
        assert sink.last().kind == ReplyKind.ORDER_CANCELLED
        assert engine.get_session(CHAT) is None
        assert not orders_path.exists()


class TestOutOfStock:
    @pytest.mark.asyncio
    async def test_out_of_stock_item_resets_before_payment(self, engine, sink, orders_path):
        await play(engine, ["I want sports shoes for a boy", "more"])
        assert sink.messages[-2].text.startswith("1. Court King Basketball")
        assert "(currently low on stock)" in sink.messages[-2].text

        await play(engine, ["1", "10", "MG Road 560001", "yes"])
        assert sink.last().kind == ReplyKind.ITEM_UNAVAILABLE
        assert ReplyKind.PAYMENT_CONFIRMED not in sink.kinds()
        assert engine.get_session(CHAT) is None
        assert not orders_path.exists()
