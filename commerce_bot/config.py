"""
Centralized configuration with environment variable overrides.

Store details, backend data locations, timeouts, paging and Telegram
credentials are all configurable here. Nothing is hardcoded in the
conversation engine or the collaborator tools.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from commerce_bot.logging_context import build_log_handler

load_dotenv()

logger = logging.getLogger(__name__)

PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class StoreConfig:
    """Storefront settings shown to the customer."""

    name: str = os.getenv("STORE_NAME", "Nexa Footwear")
    currency_symbol: str = os.getenv("CURRENCY_SYMBOL", "₹")
    default_delivery_days: int = _safe_int("DEFAULT_DELIVERY_DAYS", "5")


@dataclass(frozen=True)
class BackendConfig:
    """Where the local collaborators read and write, and how long we wait on them."""

    data_dir: str = os.getenv("CATALOG_DATA_DIR", str(PACKAGE_DATA_DIR))
    fulfillment_path: str = os.getenv(
        "FULFILLMENT_PATH", str(Path.cwd() / "fulfillments.json")
    )
    call_timeout_sec: float = _safe_float("CALL_TIMEOUT_SEC", "10.0")
    payment_method: str = os.getenv("PAYMENT_METHOD", "gpay")


@dataclass(frozen=True)
class ConversationConfig:
    """Dialogue tuning."""

    page_size: int = _safe_int("PAGE_SIZE", "3")
    max_input_length: int = _safe_int("MAX_INPUT_LENGTH", "500")


@dataclass(frozen=True)
class TelegramConfig:
    """Telegram front-end settings. Polling is used when no webhook URL is set."""

    token: str = os.getenv("TELEGRAM_TOKEN", "")
    webhook_url: str = os.getenv("TELEGRAM_WEBHOOK_URL", "")
    port: int = _safe_int("PORT", "3000")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    store: StoreConfig = field(default_factory=StoreConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    bot_name: str = os.getenv("BOT_NAME", "nexa-sales-bot")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.conversation.page_size < 1:
        raise ValueError(
            f"PAGE_SIZE must be >= 1, got {config.conversation.page_size}"
        )
    if config.conversation.max_input_length < 1:
        raise ValueError(
            f"MAX_INPUT_LENGTH must be >= 1, got {config.conversation.max_input_length}"
        )
    if config.backend.call_timeout_sec <= 0:
        raise ValueError(
            f"CALL_TIMEOUT_SEC must be > 0, got {config.backend.call_timeout_sec}"
        )
    if not config.backend.payment_method.strip():
        raise ValueError("PAYMENT_METHOD must not be empty")
    if config.store.default_delivery_days < 0:
        raise ValueError(
            f"DEFAULT_DELIVERY_DAYS must be >= 0, got {config.store.default_delivery_days}"
        )
    if not 0 < config.telegram.port < 65536:
        raise ValueError(f"PORT must be between 1 and 65535, got {config.telegram.port}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        handlers=[build_log_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.store.name)
    return config


# Singleton instance
settings = load_config()
