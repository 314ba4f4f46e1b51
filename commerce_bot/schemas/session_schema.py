"""Per-chat session state."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from commerce_bot.schemas.collaborator_schema import ProductRecord


class ConversationStage(str, Enum):
    """Position of a chat in the ordering dialogue."""
    FOOTWEAR_TYPE = "footwearType"
    ASK_GENDER = "askGender"
    SHOWING_PRODUCTS = "showingProducts"
    GET_SIZE = "getSize"
    GET_ADDRESS = "getAddress"
    CONFIRM_ORDER = "confirmOrder"


class MissingSessionFieldError(Exception):
    """Raised when a stage or pipeline step needs a field that has not been set."""


@dataclass
class Session:
    """
    Structured data accumulated for one chat.

    Lives only in process memory. Absence of a session for a chat is
    equivalent to a fresh session in FOOTWEAR_TYPE.
    """
    chat_id: str
    stage: ConversationStage = ConversationStage.FOOTWEAR_TYPE
    product_type: Optional[str] = None
    gender: Optional[str] = None
    search_query: str = ""
    last_products: list[ProductRecord] = field(default_factory=list)
    product_offset: int = 0
    has_more_products: bool = False
    selected_sku: Optional[str] = None
    selected_product: Optional[str] = None
    selected_price: Optional[float] = None
    selected_delivery_days: Optional[int] = None
    size: Optional[str] = None
    address: Optional[str] = None
    pincode: Optional[str] = None
    shown_count: int = 0

    def missing(self, *names: str) -> list[str]:
        """Return the names among ``names`` whose value is still unset."""
        return [name for name in names if getattr(self, name) is None]

    def require(self, *names: str) -> None:
        """Raise MissingSessionFieldError unless every named field is set."""
        missing = self.missing(*names)
        if missing:
            raise MissingSessionFieldError(
                f"Session {self.chat_id} in '{self.stage.value}' is missing: {', '.join(missing)}"
            )
