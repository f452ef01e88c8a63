"""Shared test fixtures for the reminder bot test suite."""

import pytest
import tempfile
import os
import fakeredis
from datetime import datetime

# Add parent directory to path so we can import reminder_bot modules
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from reminder_bot.bot import IntakeHandler
from reminder_bot.errors import DeliveryFailed
from reminder_bot.events import TextMessage
from reminder_bot.messaging import Messenger
from reminder_bot.scheduler import DueSweepDispatcher
from reminder_bot.services import TimeTaskExtractor
from reminder_bot.store import MemoryReminderStore, RedisReminderStore, SqlReminderStore

REFERENCE_NOW = datetime(2024, 1, 1, 10, 0)


class FakeMessenger(Messenger):
    """Records replies and pushes instead of talking to a platform."""

    platform = "fake"

    def __init__(self):
        self.replies = []
        self.pushes = []
        self.fail_pushes_for = set()

    async def reply(self, reply_handle, text):
        self.replies.append((reply_handle, text))

    async def push(self, user_key, text):
        if user_key in self.fail_pushes_for:
            raise DeliveryFailed(f"push to {user_key} rejected")
        self.pushes.append((user_key, text))

    def parse_events(self, payload):
        return [
            TextMessage(user_key=e["user"], text=e["text"], reply_handle=e["token"])
            for e in payload.get("events", [])
        ]


@pytest.fixture
def store():
    """Empty in-memory reminder store."""
    return MemoryReminderStore()


@pytest.fixture
def sql_store():
    """Reminder store backed by a temporary SQLite database."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    yield SqlReminderStore(db_path)

    # Cleanup
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def redis_client():
    """In-process Redis that also runs the store's Lua script."""
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def redis_store(redis_client):
    return RedisReminderStore(redis_client)


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def extractor():
    return TimeTaskExtractor(languages=["en"])


@pytest.fixture
def intake(store, messenger, extractor):
    """Intake handler whose clock is frozen at REFERENCE_NOW."""
    return IntakeHandler(store, messenger, extractor, clock=lambda: REFERENCE_NOW)


@pytest.fixture
def clock():
    """Mutable sweep clock in epoch millis."""
    class Clock:
        now = 0

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def dispatcher(store, messenger, clock):
    return DueSweepDispatcher(store, messenger, clock_ms=clock, give_up_after_ms=60_000)
