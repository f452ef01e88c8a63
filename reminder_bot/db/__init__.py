"""Database models and session management."""

from .models import Base, ReminderEntry
from .session import init_db, session_scope

__all__ = [
    "Base",
    "ReminderEntry",
    "init_db",
    "session_scope",
]
