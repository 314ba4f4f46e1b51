"""
Telegram front-end.

Routes text messages and the /start and /restart commands into the
ConversationEngine, and delivers its outbound messages back: product cards
as photos with a caption, everything else as plain text. Updates are
processed concurrently so one slow chat never holds up the others; the
engine serialises messages within a chat.
"""

import logging
from typing import Optional

from telegram import Bot, Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from commerce_bot.config import settings
from commerce_bot.conversation.collaborators import Collaborators, local_collaborators
from commerce_bot.conversation.engine import ConversationEngine
from commerce_bot.schemas.message_schema import OutboundMessage

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "telegram-webhook"


class TelegramSink:
    """Sends engine output through a Telegram bot."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def __call__(self, message: OutboundMessage) -> None:
        if message.is_product_card:
            await self._bot.send_photo(
                chat_id=message.chat_id, photo=message.image_url, caption=message.text,
            )
        else:
            await self._bot.send_message(chat_id=message.chat_id, text=message.text)


async def _on_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if update.effective_chat is None or update.message is None or not update.message.text:
        return
    engine: ConversationEngine = context.application.bot_data["engine"]
    await engine.handle_message(str(update.effective_chat.id), update.message.text)


async def _on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Telegram update failed: %s", context.error, exc_info=context.error)


def build_application(
    token: Optional[str] = None,
    collaborators: Optional[Collaborators] = None,
) -> Application:
    """Build the Telegram application with an engine bound to its bot."""
    token = token or settings.telegram.token
    if not token:
        raise ValueError("TELEGRAM_TOKEN is not set")

    application = Application.builder().token(token).concurrent_updates(True).build()
    engine = ConversationEngine(
        collaborators or local_collaborators(),
        TelegramSink(application.bot),
    )
    application.bot_data["engine"] = engine

    application.add_handler(CommandHandler(["start", "restart"], _on_text))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, _on_text))
    application.add_error_handler(_on_error)
    return application


def run_bot() -> None:
    """Run until interrupted: webhook mode when a URL is configured, polling otherwise."""
    application = build_application()
    webhook_url = settings.telegram.webhook_url
    if webhook_url:
        logger.info("Starting Telegram webhook on port %d", settings.telegram.port)
        application.run_webhook(
            listen="0.0.0.0",
            port=settings.telegram.port,
            url_path=WEBHOOK_PATH,
            webhook_url=f"{webhook_url.rstrip('/')}/{WEBHOOK_PATH}",
            drop_pending_updates=True,
        )
    else:
        logger.info("Starting Telegram polling as '%s'", settings.bot_name)
        application.run_polling(drop_pending_updates=True)
