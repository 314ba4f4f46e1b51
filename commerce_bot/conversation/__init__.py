from commerce_bot.conversation.collaborators import (
    Collaborators,
    CollaboratorError,
    local_collaborators,
)
from commerce_bot.conversation.engine import ConversationEngine
from commerce_bot.conversation.session_store import InMemorySessionStore
from commerce_bot.conversation.state_machine import (
    ConversationStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
)
from commerce_bot.schemas.session_schema import ConversationStage, Session

__all__ = [
    "ConversationEngine",
    "ConversationStage",
    "ConversationStateMachine",
    "TransitionTrigger",
    "InvalidTransitionError",
    "InMemorySessionStore",
    "Session",
    "Collaborators",
    "CollaboratorError",
    "local_collaborators",
]
