"""
Reply composition.

The conversation engine never writes customer-facing text itself. It asks
a ReplyComposer for the text of a structured instruction (a ReplyKind plus
context fields). TemplateReplyComposer is the deterministic default; any
object with a matching async ``compose`` method, such as one backed by a
text-generation model, can replace it.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Protocol

logger = logging.getLogger(__name__)


class ReplyKind(str, Enum):
    """Every kind of outbound message the engine can send."""
    ASK_CATEGORY = "ask_category"
    CATEGORY_UNCLEAR = "category_unclear"
    ASK_GENDER = "ask_gender"
    GENDER_UNCLEAR = "gender_unclear"
    FETCHING_PRODUCTS = "fetching_products"
    PRODUCT_CARD = "product_card"
    SELECT_OR_MORE = "select_or_more"
    SELECT_PRODUCT = "select_product"
    NO_MORE_PRODUCTS = "no_more_products"
    NO_RESULTS = "no_results"
    SELECTION_UNCLEAR = "selection_unclear"
    ASK_SIZE = "ask_size"
    SIZE_UNCLEAR = "size_unclear"
    ASK_ADDRESS = "ask_address"
    ADDRESS_UNCLEAR = "address_unclear"
    ORDER_SUMMARY = "order_summary"
    CONFIRMATION_UNCLEAR = "confirmation_unclear"
    ORDER_CANCELLED = "order_cancelled"
    ITEM_AVAILABLE = "item_available"
    ITEM_UNAVAILABLE = "item_unavailable"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_FAILED = "payment_failed"
    ORDER_CONFIRMED = "order_confirmed"
    INPUT_TOO_LONG = "input_too_long"
    RESTARTED = "restarted"
    SERVICE_ERROR = "service_error"
    GENERIC_ERROR = "generic_error"


# Sent without going through a composer when composing itself has failed.
FALLBACK_ERROR_TEXT = "Sorry, something went wrong on our side. Please try again."

CATEGORY_LABELS: dict[str, str] = {
    "slipper": "slippers",
    "flipflop": "flip-flops",
    "casual": "casual shoes",
    "formal": "formal shoes",
    "sports": "sports shoes",
}

GENDER_LABELS: dict[str, str] = {
    "male": "men",
    "female": "women",
    "unisex": "you",
}


class ReplyComposer(Protocol):
    async def compose(self, instruction: ReplyKind, context: Mapping[str, Any]) -> str:
        ...


class TemplateReplyComposer:
    """Deterministic str.format templates, one per ReplyKind."""

    TEMPLATES: dict[ReplyKind, str] = {
        ReplyKind.ASK_CATEGORY: (
            "Hi! Welcome to {store_name}. What are you shopping for today? "
            "We have formal, casual and sports shoes, slippers and flip-flops."
        ),
        ReplyKind.CATEGORY_UNCLEAR: (
            "Sorry, I didn't catch the kind of footwear. "
            "Try something like 'formal shoes', 'running shoes' or 'slippers'."
        ),
        ReplyKind.ASK_GENDER: "Got it, {category_label}. Are these for men, women, or for yourself?",
        ReplyKind.GENDER_UNCLEAR: "Who are they for? Just say men, women, or 'for me'.",
        ReplyKind.FETCHING_PRODUCTS: (
            "Great choice, {category_label} for {gender_label}. Fetching some options..."
        ),
        ReplyKind.PRODUCT_CARD: "{caption}",
        ReplyKind.SELECT_OR_MORE: (
            "Reply with the option number (1-{count}) to pick one, or say 'more' to see more."
        ),
        ReplyKind.SELECT_PRODUCT: "Reply with the option number (1-{count}) to pick one.",
        ReplyKind.NO_MORE_PRODUCTS: (
            "That's everything we have right now. Reply with the option number (1-{count}) to pick one."
        ),
        ReplyKind.NO_RESULTS: (
            "Sorry, we don't have any {category_label} for {gender_label} at the moment. "
            "What else can I help you find?"
        ),
        ReplyKind.SELECTION_UNCLEAR: (
            "I couldn't tell which one you meant. Reply with a number from 1 to {count}, "
            "part of the product name, or 'more'."
        ),
        ReplyKind.ASK_SIZE: "Nice pick: {product_name}. What size do you need (e.g. size 9)?",
        ReplyKind.SIZE_UNCLEAR: "Please tell me your shoe size as a number, e.g. 'size 9'.",
        ReplyKind.ASK_ADDRESS: "Size {size}, noted. Please send your delivery address with the 6-digit pincode.",
        ReplyKind.ADDRESS_UNCLEAR: (
            "I couldn't find a 6-digit pincode in that. Please send the full address including the pincode."
        ),
        ReplyKind.ORDER_SUMMARY: "{summary}\n\nShall I place the order? (yes/no)",
        ReplyKind.CONFIRMATION_UNCLEAR: "Please reply 'yes' to place the order or 'no' to cancel.",
        ReplyKind.ORDER_CANCELLED: "No problem, the order is cancelled. What else can I help you find?",
        ReplyKind.ITEM_AVAILABLE: "{product_name} is available for delivery to {pincode}.",
        ReplyKind.ITEM_UNAVAILABLE: (
            "Sorry, {product_name} is not available for delivery to {pincode} right now. "
            "Let's start again: what are you looking for?"
        ),
        ReplyKind.PAYMENT_CONFIRMED: "Payment received. {confirmation_text}",
        ReplyKind.PAYMENT_FAILED: "The payment didn't go through. Reply 'yes' to try again or 'no' to cancel.",
        ReplyKind.ORDER_CONFIRMED: (
            "Order placed successfully! Order ID: {order_id}. "
            "{product_name} (size {size}) will reach you in about {delivery_days} days."
        ),
        ReplyKind.INPUT_TOO_LONG: "That was quite long. Could you keep it brief for me?",
        ReplyKind.RESTARTED: "Starting over. What kind of footwear are you looking for?",
        ReplyKind.SERVICE_ERROR: (
            "Sorry, our {service} service isn't responding right now. Let's start again in a moment."
        ),
        ReplyKind.GENERIC_ERROR: FALLBACK_ERROR_TEXT,
    }

    async def compose(self, instruction: ReplyKind, context: Mapping[str, Any]) -> str:
        template = self.TEMPLATES[instruction]
        fields = dict(context)
        if "category" in fields:
            fields.setdefault("category_label", CATEGORY_LABELS.get(fields["category"], fields["category"]))
        if "gender" in fields:
            fields.setdefault("gender_label", GENDER_LABELS.get(fields["gender"], fields["gender"]))
        return template.format(**fields)
