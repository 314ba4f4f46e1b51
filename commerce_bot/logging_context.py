"""Per-chat logging context.

Every inbound message is handled inside ``chat_context(chat_id)``, which
binds the chat identifier to the current asyncio task. ``ChatIdFilter``
copies it onto each log record, so one customer's order can be followed
from the first message to the fulfillment write even while other chats
are logging at the same time.

Usage:
    from commerce_bot.logging_context import chat_context, get_chat_logger

    logger = get_chat_logger(__name__)
    with chat_context("123456789"):
        logger.info("Processing message")  # -> [123456789] Processing message
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

NO_CHAT = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(chat_id)s]: %(message)s"

_chat_id: ContextVar[str] = ContextVar("chat_id", default=NO_CHAT)


def get_chat_id() -> str:
    """Chat identifier bound to the current context, or '-' outside any chat."""
    return _chat_id.get()


@contextmanager
def chat_context(chat_id: str) -> Iterator[None]:
    """Bind ``chat_id`` for the duration of the block, restoring the previous value after."""
    token = _chat_id.set(chat_id)
    try:
        yield
    finally:
        _chat_id.reset(token)


class ChatIdFilter(logging.Filter):
    """Stamps ``chat_id`` on every record that passes through."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "chat_id"):
            record.chat_id = _chat_id.get()  # type: ignore[attr-defined]
        return True


def build_log_handler() -> logging.Handler:
    """Stream handler whose format includes the chat id.

    The filter sits on the handler, so records from third-party loggers
    (the Telegram library, asyncio) format cleanly too.
    """
    handler = logging.StreamHandler()
    handler.addFilter(ChatIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def get_chat_logger(name: str) -> logging.Logger:
    """Return a logger whose own records always carry ``chat_id``.

    Needed for handlers that do not have the filter, such as a test
    capture handler.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, ChatIdFilter) for f in logger.filters):
        logger.addFilter(ChatIdFilter())
    return logger
