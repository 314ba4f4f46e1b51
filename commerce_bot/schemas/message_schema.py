"""Outbound message payloads."""

from typing import Optional

from pydantic import BaseModel

from commerce_bot.prompts.reply_composer import ReplyKind


class OutboundMessage(BaseModel):
    """A single send to a chat: plain text, or a product card when image_url is set."""

    chat_id: str
    kind: ReplyKind
    text: str
    image_url: Optional[str] = None

    @property
    def is_product_card(self) -> bool:
        return self.image_url is not None
