"""
Finite state machine for the ordering dialogue.

Defines the six conversation stages and the explicit transitions between
them. Each transition names the trigger that causes it, and each stage
declares the session fields that must already be set before it can be
entered, so a later stage can never read a field an earlier stage did
not fill in.

Usage:
    sm = ConversationStateMachine(session)
    sm.transition(TransitionTrigger.CATEGORY_ONLY)
    assert session.stage == ConversationStage.ASK_GENDER
"""

import logging
from dataclasses import dataclass, fields
from enum import Enum

from commerce_bot.schemas.session_schema import (
    ConversationStage,
    MissingSessionFieldError,
    Session,
)

logger = logging.getLogger(__name__)


class TransitionTrigger(str, Enum):
    """Events that cause stage transitions."""
    CATEGORY_WITH_GENDER = "category_with_gender"
    CATEGORY_ONLY = "category_only"
    GENDER_GIVEN = "gender_given"
    NO_RESULTS = "no_results"
    MORE_REQUESTED = "more_requested"
    PRODUCT_SELECTED = "product_selected"
    SIZE_GIVEN = "size_given"
    ADDRESS_GIVEN = "address_given"
    ORDER_COMPLETED = "order_completed"
    ORDER_DECLINED = "order_declined"
    ITEM_UNAVAILABLE = "item_unavailable"
    PAYMENT_FAILED = "payment_failed"


@dataclass(frozen=True)
class Transition:
    """A single valid stage transition."""
    from_stage: ConversationStage
    to_stage: ConversationStage
    trigger: TransitionTrigger


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current stage."""


# Fields that must be set before a stage may be entered. Each stage
# inherits the requirements of the stages before it.
STAGE_REQUIREMENTS: dict[ConversationStage, tuple[str, ...]] = {
    ConversationStage.FOOTWEAR_TYPE: (),
    ConversationStage.ASK_GENDER: ("product_type",),
    ConversationStage.SHOWING_PRODUCTS: ("product_type", "gender"),
    ConversationStage.GET_SIZE: (
        "product_type", "selected_sku", "selected_product", "selected_price",
    ),
    ConversationStage.GET_ADDRESS: (
        "product_type", "selected_sku", "selected_product", "selected_price", "size",
    ),
    ConversationStage.CONFIRM_ORDER: (
        "product_type", "selected_sku", "selected_product", "selected_price", "size",
        "address", "pincode",
    ),
}

# Fields cleared when the machine loops back to the start.
_RESETTABLE_FIELDS = tuple(f.name for f in fields(Session) if f.name != "chat_id")


class ConversationStateMachine:
    """
    Deterministic stage controller bound to one session.

    Every transition must be explicitly defined. A trigger that has no
    transition from the current stage is rejected with an error listing
    the triggers that are allowed.
    """

    TRANSITIONS: list[Transition] = [
        # --- Category ---
        Transition(ConversationStage.FOOTWEAR_TYPE, ConversationStage.SHOWING_PRODUCTS,
                   TransitionTrigger.CATEGORY_WITH_GENDER),
        Transition(ConversationStage.FOOTWEAR_TYPE, ConversationStage.ASK_GENDER,
                   TransitionTrigger.CATEGORY_ONLY),
        Transition(ConversationStage.FOOTWEAR_TYPE, ConversationStage.FOOTWEAR_TYPE,
                   TransitionTrigger.NO_RESULTS),

        # --- Gender ---
        Transition(ConversationStage.ASK_GENDER, ConversationStage.SHOWING_PRODUCTS,
                   TransitionTrigger.GENDER_GIVEN),
        Transition(ConversationStage.ASK_GENDER, ConversationStage.FOOTWEAR_TYPE,
                   TransitionTrigger.NO_RESULTS),

        # --- Browsing ---
        Transition(ConversationStage.SHOWING_PRODUCTS, ConversationStage.SHOWING_PRODUCTS,
                   TransitionTrigger.MORE_REQUESTED),
        Transition(ConversationStage.SHOWING_PRODUCTS, ConversationStage.GET_SIZE,
                   TransitionTrigger.PRODUCT_SELECTED),

        # --- Delivery details ---
        Transition(ConversationStage.GET_SIZE, ConversationStage.GET_ADDRESS,
                   TransitionTrigger.SIZE_GIVEN),
        Transition(ConversationStage.GET_ADDRESS, ConversationStage.CONFIRM_ORDER,
                   TransitionTrigger.ADDRESS_GIVEN),

        # --- Confirmation ---
        Transition(ConversationStage.CONFIRM_ORDER, ConversationStage.FOOTWEAR_TYPE,
                   TransitionTrigger.ORDER_COMPLETED),
        Transition(ConversationStage.CONFIRM_ORDER, ConversationStage.FOOTWEAR_TYPE,
                   TransitionTrigger.ORDER_DECLINED),
        Transition(ConversationStage.CONFIRM_ORDER, ConversationStage.FOOTWEAR_TYPE,
                   TransitionTrigger.ITEM_UNAVAILABLE),
        Transition(ConversationStage.CONFIRM_ORDER, ConversationStage.CONFIRM_ORDER,
                   TransitionTrigger.PAYMENT_FAILED),
    ]

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    @property
    def current_stage(self) -> ConversationStage:
        return self._session.stage

    def transition(self, trigger: TransitionTrigger) -> ConversationStage:
        """
        Execute a stage transition.

        Transitions back to FOOTWEAR_TYPE from another stage clear every
        collected field, looping the dialogue back to a fresh start.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new conversation stage.

        Raises:
            InvalidTransitionError: If no valid transition exists.
            MissingSessionFieldError: If the target stage needs a field that is unset.
        """
        for t in self.TRANSITIONS:
            if t.from_stage == self._session.stage and t.trigger == trigger:
                old_stage = self._session.stage
                if t.to_stage == ConversationStage.FOOTWEAR_TYPE:
                    self.reset()
                else:
                    self._session.require(*STAGE_REQUIREMENTS[t.to_stage])
                    self._session.stage = t.to_stage

                logger.debug(
                    "Stage transition: %s -> %s (trigger: %s)",
                    old_stage.value, self._session.stage.value, trigger.value,
                )
                return self._session.stage

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._session.stage.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def reset(self) -> ConversationStage:
        """Unconditionally return to FOOTWEAR_TYPE with every collected field cleared."""
        fresh = Session(chat_id=self._session.chat_id)
        for name in _RESETTABLE_FIELDS:
            setattr(self._session, name, getattr(fresh, name))
        return self._session.stage

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current stage."""
        return [t.trigger for t in self.TRANSITIONS if t.from_stage == self._session.stage]

    def is_initial(self) -> bool:
        return self._session.stage == ConversationStage.FOOTWEAR_TYPE


def check_stage_fields(session: Session) -> None:
    """Assert the session carries every field its current stage depends on."""
    try:
        session.require(*STAGE_REQUIREMENTS[session.stage])
    except MissingSessionFieldError:
        logger.error("Session %s is inconsistent for stage %s", session.chat_id, session.stage.value)
        raise
