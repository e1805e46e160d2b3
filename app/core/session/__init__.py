"""
Conversation session module.

Per-session booking state (step + collected data) and its storage.
"""

from .state import (
    ConversationStep,
    INITIAL_STEP,
    VALID_TRANSITIONS,
    can_transition,
    is_terminal_step,
)
from .models import SessionData
from .store import (
    SessionStore,
    InMemorySessionStore,
    RedisSessionStore,
    get_session_store,
)

__all__ = [
    # State
    "ConversationStep",
    "INITIAL_STEP",
    "VALID_TRANSITIONS",
    "can_transition",
    "is_terminal_step",
    # Models
    "SessionData",
    # Store
    "SessionStore",
    "InMemorySessionStore",
    "RedisSessionStore",
    "get_session_store",
]
