"""
Telegram sales bot entry point.

Wires the conversation engine to Telegram and the local JSON-backed
collaborators. Supports both the live bot and an offline console mode
for development.

Usage:
    Live bot:     python main.py
    Console mode: python main.py console
"""

import logging
import sys

from commerce_bot.config import settings

logger = logging.getLogger(__name__)


def _run_bot_mode() -> None:
    """Start the Telegram bot (requires TELEGRAM_TOKEN)."""
    from commerce_bot.transports.telegram_bot import run_bot

    logger.info("Starting %s for %s", settings.bot_name, settings.store.name)
    run_bot()


def _run_console_mode() -> None:
    """Start the offline console demo (no token required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_bot_mode()
