"""Messaging platform contract."""

from abc import ABC, abstractmethod
from typing import Any, List, Mapping

from reminder_bot.events import InboundEvent


class Messenger(ABC):
    """Send text to users and turn webhook payloads into inbound events."""

    platform: str = ""

    @abstractmethod
    async def reply(self, reply_handle: str, text: str) -> None:
        """Answer an inbound message using its one-shot reply handle."""

    @abstractmethod
    async def push(self, user_key: str, text: str) -> None:
        """Send an unsolicited message to a user."""

    @abstractmethod
    def parse_events(self, payload: Mapping[str, Any]) -> List[InboundEvent]:
        """Convert a decoded webhook body into inbound events."""

    def verify_request(self, body: bytes, headers: Mapping[str, str]) -> bool:
        """Check that a webhook request really comes from the platform."""
        return True

    async def close(self) -> None:
        """Release network resources."""
