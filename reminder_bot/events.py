"""Inbound events, decided once at the platform boundary."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextMessage:
    """A user sent a text message."""

    user_key: str
    text: str
    reply_handle: str


@dataclass(frozen=True)
class OtherEvent:
    """Anything else the platform delivered (follows, stickers, edits...)."""

    description: str


InboundEvent = Union[TextMessage, OtherEvent]
