"""Core package - exports session state, unknown-term tracking and helpers."""

from .session import (
    SessionState,
    SessionStore,
    InMemorySessionStore,
    pick_variant,
)
from .unknown_terms import (
    UnknownTerm,
    UnknownTermTracker,
)
from .helpers import (
    derive_session_id,
    query_to_dict,
    decision_to_dict,
)

__all__ = [
    "SessionState",
    "SessionStore",
    "InMemorySessionStore",
    "pick_variant",
    "UnknownTerm",
    "UnknownTermTracker",
    "derive_session_id",
    "query_to_dict",
    "decision_to_dict",
]
