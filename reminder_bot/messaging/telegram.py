"""Telegram Bot API adapter."""

import hmac
from typing import Any, List, Mapping, Optional

from telegram import Bot, Update
from telegram.error import TelegramError

from reminder_bot.errors import DeliveryFailed
from reminder_bot.events import InboundEvent, OtherEvent, TextMessage
from .base import Messenger


SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


class TelegramMessenger(Messenger):
    """
    Reply and push through a Telegram bot.

    The reply handle is the chat id of the incoming message; pushes go to the
    user's private chat, whose id equals the user id.
    """

    platform = "telegram"

    def __init__(self, bot_token: str, secret_token: Optional[str] = None, bot: Optional[Bot] = None):
        self.secret_token = secret_token
        self._bot = bot or Bot(token=bot_token)

    async def reply(self, reply_handle: str, text: str) -> None:
        await self._send(reply_handle, text)

    async def push(self, user_key: str, text: str) -> None:
        await self._send(user_key, text)

    async def _send(self, chat_id: str, text: str) -> None:
        try:
            await self._bot.initialize()
            await self._bot.send_message(chat_id=chat_id, text=text)
        except TelegramError as e:
            raise DeliveryFailed(f"Telegram send to {chat_id} failed: {e}") from e

    def verify_request(self, body: bytes, headers: Mapping[str, str]) -> bool:
        if not self.secret_token:
            return True
        provided = headers.get(SECRET_HEADER) or headers.get(SECRET_HEADER.lower()) or ""
        return hmac.compare_digest(provided, self.secret_token)

    def parse_events(self, payload: Mapping[str, Any]) -> List[InboundEvent]:
        update = Update.de_json(dict(payload), self._bot)
        message = update.message if update else None

        if message and message.text and message.from_user:
            return [
                TextMessage(
                    user_key=str(message.from_user.id),
                    text=message.text,
                    reply_handle=str(message.chat.id),
                )
            ]

        kinds = [k for k in payload if k != "update_id"]
        return [OtherEvent(description=kinds[0] if kinds else "unknown")]

    async def close(self) -> None:
        await self._bot.shutdown()
