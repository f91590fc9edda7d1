"""Per-user conversation state and its stores."""

from chatflow.session.models import AwaitingNode, Fresh, ResumePoint, Session, SessionUpdate
from chatflow.session.store import (
    MemorySessionStore,
    SessionStore,
    SqliteSessionStore,
    create_session_store,
)

__all__ = [
    "AwaitingNode",
    "Fresh",
    "ResumePoint",
    "Session",
    "SessionUpdate",
    "SessionStore",
    "MemorySessionStore",
    "SqliteSessionStore",
    "create_session_store",
]
