"""Reminder persistence backends."""

from .base import Reminder, ReminderStore
from .memory import MemoryReminderStore
from .redis_store import RedisReminderStore
from .sql import SqlReminderStore

__all__ = [
    "Reminder",
    "ReminderStore",
    "MemoryReminderStore",
    "RedisReminderStore",
    "SqlReminderStore",
]
