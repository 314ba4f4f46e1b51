"""Shared test fixtures and helpers."""

import itertools
from typing import Optional

import pytest

from commerce_bot.conversation.collaborators import Collaborators
from commerce_bot.conversation.engine import ConversationEngine
from commerce_bot.conversation.session_store import InMemorySessionStore
from commerce_bot.conversation.state_machine import ConversationStateMachine
from commerce_bot.prompts.reply_composer import ReplyKind
from commerce_bot.schemas.collaborator_schema import ProductPage, ProductRecord
from commerce_bot.schemas.message_schema import OutboundMessage
from commerce_bot.schemas.session_schema import ConversationStage, Session


def make_product(n: int, **overrides) -> ProductRecord:
    """Helper to create a ProductRecord with sensible defaults."""
    fields = {
        "sku": f"SKU-{n}",
        "name": f"Test Shoe {n}",
        "category": "sports",
        "gender": "male",
        "price": 1000 + n,
        "image_url": f"https://img.example/{n}.jpg",
        "delivery_days": 3,
        "available": True,
    }
    fields.update(overrides)
    return ProductRecord(**fields)


def make_session(stage: ConversationStage = ConversationStage.FOOTWEAR_TYPE, **fields) -> Session:
    """Helper to create a Session, defaulting chat_id to 'chat-1'."""
    fields.setdefault("chat_id", "chat-1")
    return Session(stage=stage, **fields)


def confirm_ready_session(chat_id: str = "chat-1") -> Session:
    """A session sitting in CONFIRM_ORDER with every field filled."""
    return make_session(
        ConversationStage.CONFIRM_ORDER,
        chat_id=chat_id,
        product_type="sports",
        gender="male",
        last_products=[make_product(1), make_product(2)],
        selected_sku="SKU-2",
        selected_product="Test Shoe 2",
        selected_price=1002,
        selected_delivery_days=3,
        size="9",
        address="my house, pincode 560001",
        pincode="560001",
    )


class FakeBackend:
    """In-memory collaborators with switchable outcomes and call recording."""

    def __init__(self, products: Optional[list[ProductRecord]] = None) -> None:
        self.products = products if products is not None else [make_product(i) for i in range(1, 6)]
        self.available = True
        self.payment_ok = True
        self.record_ok = True
        self.failing: set[str] = set()
        self.calls: dict[str, list] = {
            "find_products": [],
            "check_availability": [],
            "process_payment": [],
            "record_order": [],
        }

    def _enter(self, name: str, request) -> None:
        self.calls[name].append(request)
        if name in self.failing:
            raise RuntimeError(f"{name} is down")

    async def find_products(self, request):
        self._enter("find_products", request)
        page = self.products[request.offset:request.offset + request.limit]
        return ProductPage(items=page, has_more=request.offset + request.limit < len(self.products))

    async def check_availability(self, request):
        self._enter("check_availability", request)
        return {
            "ok": True,
            "available": self.available,
            "name": request.sku,
            "store_qty": 1 if self.available else 0,
            "stockroom_qty": 0,
        }

    async def process_payment(self, request):
        self._enter("process_payment", request)
        return {"ok": self.payment_ok, "confirmation_text": "Paid." if self.payment_ok else "Declined."}

    async def record_order(self, request):
        self._enter("record_order", request)
        return {"ok": self.record_ok}

    def collaborators(self) -> Collaborators:
        return Collaborators(
            find_products=self.find_products,
            check_availability=self.check_availability,
            process_payment=self.process_payment,
            record_order=self.record_order,
        )

    def call_count(self) -> int:
        return sum(len(c) for c in self.calls.values())


class RecordingSink:
    """Collects every outbound message instead of sending it."""

    def __init__(self) -> None:
        self.messages: list[OutboundMessage] = []

    async def __call__(self, message: OutboundMessage) -> None:
        self.messages.append(message)

    def kinds(self) -> list[ReplyKind]:
        return [m.kind for m in self.messages]

    def count(self, kind: ReplyKind) -> int:
        return sum(1 for m in self.messages if m.kind == kind)

    def last(self) -> OutboundMessage:
        return self.messages[-1]

    def clear(self) -> None:
        self.messages.clear()


@pytest.fixture
def session():
    return make_session()


@pytest.fixture
def state_machine(session):
    return ConversationStateMachine(session)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def engine(backend, sink, store):
    counter = itertools.count(1)
    return ConversationEngine(
        backend.collaborators(),
        sink,
        store=store,
        page_size=3,
        call_timeout=1.0,
        payment_method="gpay",
        max_input_length=500,
        order_id_factory=lambda: f"order-{next(counter)}",
    )
