"""
Conversation engine: one ordering dialogue per chat identifier.

Each inbound message is handled under the chat's lock: the session is
loaded (a copy), the handler for its current stage extracts the field it
needs, calls whichever collaborators that stage requires (one at a time),
sends replies through the sink, and finally commits the session back to
the store, or clears it when the dialogue loops back to the start.

Unrecognized input never advances a stage and never touches the session;
the same prompt is simply sent again.
"""

import asyncio
from functools import partial
from typing import Any, Awaitable, Callable, Mapping, Optional

from commerce_bot.config import settings
from commerce_bot.conversation.collaborators import Collaborators, CollaboratorError, call_collaborator
from commerce_bot.conversation.extraction import (
    extract_category,
    extract_confirmation,
    extract_gender,
    extract_pincode,
    extract_size,
    is_restart_command,
    resolve_selection,
    wants_more,
)
from commerce_bot.conversation.order_pipeline import OrderOutcome, OrderPipeline
from commerce_bot.conversation.session_store import InMemorySessionStore
from commerce_bot.conversation.state_machine import (
    ConversationStateMachine,
    TransitionTrigger,
    check_stage_fields,
)
from commerce_bot.logging_context import chat_context, get_chat_logger
from commerce_bot.prompts.prompt_templates import build_order_summary, build_product_caption
from commerce_bot.prompts.reply_composer import (
    FALLBACK_ERROR_TEXT,
    ReplyComposer,
    ReplyKind,
    TemplateReplyComposer,
)
from commerce_bot.schemas.collaborator_schema import ProductPage, ProductQuery
from commerce_bot.schemas.message_schema import OutboundMessage
from commerce_bot.schemas.session_schema import ConversationStage, Session
from commerce_bot.utils import new_order_id

logger = get_chat_logger(__name__)

MessageSink = Callable[[OutboundMessage], Awaitable[None]]
StageHandler = Callable[[Session, str], Awaitable[Optional[Session]]]


class ConversationEngine:
    """
    Drives every chat through the ordering stages.

    Handlers return the session to commit, or None to clear it. Messages
    for the same chat are processed strictly in arrival order; different
    chats proceed independently.
    """

    def __init__(
        self,
        collaborators: Collaborators,
        sink: MessageSink,
        *,
        store: Optional[InMemorySessionStore] = None,
        composer: Optional[ReplyComposer] = None,
        page_size: Optional[int] = None,
        call_timeout: Optional[float] = None,
        payment_method: Optional[str] = None,
        max_input_length: Optional[int] = None,
        order_id_factory: Callable[[], str] = new_order_id,
    ) -> None:
        self._collaborators = collaborators
        self._sink = sink
        self._store = store if store is not None else InMemorySessionStore()
        self._composer = composer or TemplateReplyComposer()
        self._page_size = page_size or settings.conversation.page_size
        self._call_timeout = call_timeout or settings.backend.call_timeout_sec
        self._payment_method = payment_method or settings.backend.payment_method
        self._max_input_length = max_input_length or settings.conversation.max_input_length
        self._order_id_factory = order_id_factory
        self._currency = settings.store.currency_symbol

        self._handlers: dict[ConversationStage, StageHandler] = {
            ConversationStage.FOOTWEAR_TYPE: self._on_footwear_type,
            ConversationStage.ASK_GENDER: self._on_ask_gender,
            ConversationStage.SHOWING_PRODUCTS: self._on_showing_products,
            ConversationStage.GET_SIZE: self._on_get_size,
            ConversationStage.GET_ADDRESS: self._on_get_address,
            ConversationStage.CONFIRM_ORDER: self._on_confirm_order,
        }

    @property
    def store(self) -> InMemorySessionStore:
        return self._store

    def get_session(self, chat_id: str) -> Optional[Session]:
        return self._store.get(chat_id)

    def get_stage(self, chat_id: str) -> ConversationStage:
        """Current stage for a chat. An unseen or cleared chat is at the start."""
        session = self._store.get(chat_id)
        return session.stage if session else ConversationStage.FOOTWEAR_TYPE

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    async def handle_message(self, chat_id: str, text: str) -> None:
        """Process one inbound message. Never raises."""
        chat_id = str(chat_id)
        text = (text or "").strip()
        if not text:
            return
        with chat_context(chat_id):
            try:
                await self._store.with_lock(chat_id, partial(self._process, chat_id, text))
            except Exception:
                logger.exception("Unhandled error while processing message for chat %s", chat_id)
                await self._send_fallback(chat_id)

    async def _process(self, chat_id: str, text: str) -> None:
        if is_restart_command(text):
            kind = ReplyKind.RESTARTED if chat_id in self._store else ReplyKind.ASK_CATEGORY
            self._store.put(chat_id, Session(chat_id=chat_id))
            logger.info("Chat %s restarted", chat_id)
            await self._reply(chat_id, kind)
            return

        if len(text) > self._max_input_length:
            await self._reply(chat_id, ReplyKind.INPUT_TOO_LONG)
            return

        session = self._store.get(chat_id) or Session(chat_id=chat_id)
        check_stage_fields(session)
        logger.debug("Chat %s in stage %s received %r", chat_id, session.stage.value, text)

        result = await self._handlers[session.stage](session, text)
        if result is None:
            self._store.delete(chat_id)
        else:
            self._store.put(chat_id, result)

    # ------------------------------------------------------------------ #
    # Stage handlers
    # ------------------------------------------------------------------ #

    async def _on_footwear_type(self, session: Session, text: str) -> Optional[Session]:
        category = extract_category(text)
        if category is None:
            seen = session.chat_id in self._store
            await self._reply(session.chat_id, ReplyKind.CATEGORY_UNCLEAR if seen else ReplyKind.ASK_CATEGORY)
            return session

        session.product_type = category
        session.search_query = text
        gender = extract_gender(text)
        if gender is None:
            ConversationStateMachine(session).transition(TransitionTrigger.CATEGORY_ONLY)
            await self._reply(session.chat_id, ReplyKind.ASK_GENDER, {"category": category})
            return session

        session.gender = gender
        return await self._start_browsing(session, TransitionTrigger.CATEGORY_WITH_GENDER)

    async def _on_ask_gender(self, session: Session, text: str) -> Optional[Session]:
        gender = extract_gender(text)
        if gender is None:
            await self._reply(session.chat_id, ReplyKind.GENDER_UNCLEAR)
            return session

        session.gender = gender
        return await self._start_browsing(session, TransitionTrigger.GENDER_GIVEN)

    async def _on_showing_products(self, session: Session, text: str) -> Optional[Session]:
        count = len(session.last_products)
        product = resolve_selection(text, session.last_products)
        if product is not None:
            session.selected_sku = product.sku
            session.selected_product = product.name
            session.selected_price = product.price
            session.selected_delivery_days = product.delivery_days
            ConversationStateMachine(session).transition(TransitionTrigger.PRODUCT_SELECTED)
            logger.info("Chat %s selected %s", session.chat_id, product.sku)
            await self._reply(session.chat_id, ReplyKind.ASK_SIZE, {"product_name": product.name})
            return session

        if not wants_more(text):
            await self._reply(session.chat_id, ReplyKind.SELECTION_UNCLEAR, {"count": count})
            return session

        if not session.has_more_products:
            await self._reply(session.chat_id, ReplyKind.NO_MORE_PRODUCTS, {"count": count})
            return session

        offset = session.product_offset + self._page_size
        try:
            page = await self._search(session, offset)
        except CollaboratorError as exc:
            await self._reply(session.chat_id, ReplyKind.SERVICE_ERROR, {"service": exc.collaborator})
            return None

        if not page.items:
            session.has_more_products = False
            await self._reply(session.chat_id, ReplyKind.NO_MORE_PRODUCTS, {"count": count})
            return session

        ConversationStateMachine(session).transition(TransitionTrigger.MORE_REQUESTED)
        await self._show_page(session, page, offset)
        return session

    async def _on_get_size(self, session: Session, text: str) -> Optional[Session]:
        size = extract_size(text)
        if size is None:
            await self._reply(session.chat_id, ReplyKind.SIZE_UNCLEAR)
            return session

        session.size = size
        ConversationStateMachine(session).transition(TransitionTrigger.SIZE_GIVEN)
        await self._reply(session.chat_id, ReplyKind.ASK_ADDRESS, {"size": size})
        return session

    async def _on_get_address(self, session: Session, text: str) -> Optional[Session]:
        pincode = extract_pincode(text)
        if pincode is None:
            await self._reply(session.chat_id, ReplyKind.ADDRESS_UNCLEAR)
            return session

        session.address = text
        session.pincode = pincode
        ConversationStateMachine(session).transition(TransitionTrigger.ADDRESS_GIVEN)
        await self._reply(session.chat_id, ReplyKind.ORDER_SUMMARY, {
            "summary": build_order_summary(session, self._currency),
        })
        return session

    async def _on_confirm_order(self, session: Session, text: str) -> Optional[Session]:
        answer = extract_confirmation(text)
        if answer is None:
            await self._reply(session.chat_id, ReplyKind.CONFIRMATION_UNCLEAR)
            return session

        machine = ConversationStateMachine(session)
        if not answer:
            machine.transition(TransitionTrigger.ORDER_DECLINED)
            logger.info("Chat %s declined the order", session.chat_id)
            await self._reply(session.chat_id, ReplyKind.ORDER_CANCELLED)
            return None

        pipeline = OrderPipeline(
            self._collaborators,
            partial(self._reply, session.chat_id),
            call_timeout=self._call_timeout,
            payment_method=self._payment_method,
            order_id_factory=self._order_id_factory,
            on_paid=partial(self._store.delete, session.chat_id),
        )
        result = await pipeline.run(session)

        if result.outcome == OrderOutcome.PAYMENT_FAILED:
            machine.transition(TransitionTrigger.PAYMENT_FAILED)
            return session
        if result.outcome == OrderOutcome.UNAVAILABLE:
            machine.transition(TransitionTrigger.ITEM_UNAVAILABLE)
            return None
        machine.transition(TransitionTrigger.ORDER_COMPLETED)
        return None

    # ------------------------------------------------------------------ #
    # Browsing helpers
    # ------------------------------------------------------------------ #

    async def _start_browsing(self, session: Session, trigger: TransitionTrigger) -> Optional[Session]:
        """Run the first search for a category/gender pair and show page one."""
        labels = {"category": session.product_type, "gender": session.gender}
        await self._reply(session.chat_id, ReplyKind.FETCHING_PRODUCTS, labels)
        try:
            page = await self._search(session, 0)
        except CollaboratorError as exc:
            await self._reply(session.chat_id, ReplyKind.SERVICE_ERROR, {"service": exc.collaborator})
            return None

        machine = ConversationStateMachine(session)
        if not page.items:
            machine.transition(TransitionTrigger.NO_RESULTS)
            await self._reply(session.chat_id, ReplyKind.NO_RESULTS, labels)
            return None

        machine.transition(trigger)
        await self._show_page(session, page, 0)
        return session

    async def _search(self, session: Session, offset: int) -> ProductPage:
        query = ProductQuery(
            query=session.search_query,
            category=session.product_type,
            gender=session.gender,
            limit=self._page_size,
            offset=offset,
        )
        return await call_collaborator(
            "product search",
            self._collaborators.find_products(query),
            ProductPage,
            self._call_timeout,
        )

    async def _show_page(self, session: Session, page: ProductPage, offset: int) -> None:
        session.last_products = list(page.items)
        session.product_offset = offset
        session.has_more_products = page.has_more
        session.shown_count += len(page.items)

        for position, product in enumerate(page.items, start=1):
            caption = build_product_caption(position, product, self._currency)
            await self._reply(
                session.chat_id, ReplyKind.PRODUCT_CARD, {"caption": caption},
                image_url=product.image_url or None,
            )
        follow_up = ReplyKind.SELECT_OR_MORE if page.has_more else ReplyKind.SELECT_PRODUCT
        await self._reply(session.chat_id, follow_up, {"count": len(page.items)})

    # ------------------------------------------------------------------ #
    # Outbound
    # ------------------------------------------------------------------ #

    async def _reply(
        self,
        chat_id: str,
        kind: ReplyKind,
        context: Optional[Mapping[str, Any]] = None,
        image_url: Optional[str] = None,
    ) -> None:
        fields = {"store_name": settings.store.name, **(context or {})}
        text = await asyncio.wait_for(self._composer.compose(kind, fields), timeout=self._call_timeout)
        await self._sink(OutboundMessage(chat_id=chat_id, kind=kind, text=text, image_url=image_url))

    async def _send_fallback(self, chat_id: str) -> None:
        try:
            await self._sink(OutboundMessage(
                chat_id=chat_id, kind=ReplyKind.GENERIC_ERROR, text=FALLBACK_ERROR_TEXT,
            ))
        except Exception:
            logger.exception("Could not deliver the error reply to chat %s", chat_id)
