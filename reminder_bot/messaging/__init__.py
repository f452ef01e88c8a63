"""Messaging platform adapters."""

from .base import Messenger
from .line import LineMessenger
from .telegram import TelegramMessenger

__all__ = ["Messenger", "LineMessenger", "TelegramMessenger"]
