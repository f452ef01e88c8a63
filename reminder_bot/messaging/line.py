"""LINE Messaging API adapter."""

import base64
import hashlib
import hmac
import logging
from typing import Any, List, Mapping, Optional

import httpx

from reminder_bot.errors import DeliveryFailed
from reminder_bot.events import InboundEvent, OtherEvent, TextMessage
from .base import Messenger

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Line-Signature"


class LineMessenger(Messenger):
    """Reply and push through the LINE Messaging API."""

    platform = "line"

    def __init__(
        self,
        channel_access_token: str,
        channel_secret: Optional[str] = None,
        api_base: str = "https://api.line.me",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.channel_secret = channel_secret
        self._client = client or httpx.AsyncClient(
            base_url=api_base,
            headers={"Authorization": f"Bearer {channel_access_token}"},
            timeout=10.0,
        )

    async def reply(self, reply_handle: str, text: str) -> None:
        await self._post(
            "/v2/bot/message/reply",
            {"replyToken": reply_handle, "messages": [{"type": "text", "text": text}]},
        )

    async def push(self, user_key: str, text: str) -> None:
        await self._post(
            "/v2/bot/message/push",
            {"to": user_key, "messages": [{"type": "text", "text": text}]},
        )

    async def _post(self, path: str, data: dict) -> None:
        try:
            response = await self._client.post(path, json=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DeliveryFailed(
                f"LINE rejected {path}: {e.response.status_code} {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise DeliveryFailed(f"LINE request to {path} failed: {e}") from e

    def verify_request(self, body: bytes, headers: Mapping[str, str]) -> bool:
        """Validate X-Line-Signature (base64 HMAC-SHA256 of the raw body)."""
        if not self.channel_secret:
            return True

        signature = headers.get(SIGNATURE_HEADER) or headers.get(SIGNATURE_HEADER.lower())
        if not signature:
            logger.warning("LINE webhook request without signature header")
            return False

        digest = hmac.new(self.channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
        expected = base64.b64encode(digest).decode("utf-8")
        return hmac.compare_digest(expected, signature)

    def parse_events(self, payload: Mapping[str, Any]) -> List[InboundEvent]:
        events: List[InboundEvent] = []
        for raw in payload.get("events") or []:
            message = raw.get("message") or {}
            user_id = (raw.get("source") or {}).get("userId")
            reply_token = raw.get("replyToken")

            if (
                raw.get("type") == "message"
                and message.get("type") == "text"
                and user_id
                and reply_token
            ):
                events.append(
                    TextMessage(user_key=user_id, text=message.get("text", ""), reply_handle=reply_token)
                )
            else:
                kind = raw.get("type", "unknown")
                if message.get("type"):
                    kind = f"{kind}/{message['type']}"
                events.append(OtherEvent(description=kind))
        return events

    async def close(self) -> None:
        await self._client.aclose()
