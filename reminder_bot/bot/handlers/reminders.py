"""Turn inbound chat messages into stored reminders."""

import enum
import logging
from datetime import datetime
from typing import Callable, Optional

from reminder_bot.errors import DeliveryFailed, StoreUnavailable
from reminder_bot.events import InboundEvent, TextMessage
from reminder_bot.services import TimeTaskExtractor
from reminder_bot.messaging import Messenger
from reminder_bot.store import Reminder, ReminderStore

logger = logging.getLogger(__name__)

USAGE_TEXT = (
    "❌ I couldn't find a time in that message.\n\n"
    "Tell me when and what, for example:\n"
    "remind me tomorrow at 8pm to take medicine\n"
    "in 2 hours call the bank\n"
    "friday 5pm submit weekly report"
)

APOLOGY_TEXT = "😔 Sorry, I couldn't save that reminder right now. Please try again in a moment."

DUE_FORMAT = "%A, %B %d at %H:%M"


class IntakeOutcome(enum.Enum):
    PARSED = "parsed"
    UNPARSED = "unparsed"
    IGNORED = "ignored"


def format_confirmation(due_at: datetime, task: str) -> str:
    return f"⏰ Reminder set for {due_at.strftime(DUE_FORMAT)}\n💬 {task}"


class IntakeHandler:
    """Parse a text message, save the reminder and confirm, or explain usage."""

    def __init__(
        self,
        store: ReminderStore,
        messenger: Messenger,
        extractor: TimeTaskExtractor,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.messenger = messenger
        self.extractor = extractor
        self.clock = clock or datetime.now

    async def handle(self, event: InboundEvent) -> IntakeOutcome:
        if not isinstance(event, TextMessage):
            logger.debug(f"Ignoring event: {event}")
            return IntakeOutcome.IGNORED

        result = self.extractor.extract(event.text, self.clock())

        if result is None:
            logger.info(f"No time expression in message from {event.user_key}")
            await self.messenger.reply(event.reply_handle, USAGE_TEXT)
            return IntakeOutcome.UNPARSED

        reminder = Reminder(due_at_ms=result.due_at_ms, task=result.task)
        try:
            self.store.insert(event.user_key, reminder)
        except StoreUnavailable as e:
            logger.error(f"Failed to save reminder for {event.user_key}: {e}")
            try:
                await self.messenger.reply(event.reply_handle, APOLOGY_TEXT)
            except DeliveryFailed as reply_error:
                logger.error(f"Could not send apology to {event.user_key}: {reply_error}")
            raise

        logger.info(
            f"Saved reminder {reminder.id} for {event.user_key} due {result.due_at.isoformat()}"
        )
        await self.messenger.reply(event.reply_handle, format_confirmation(result.due_at, result.task))
        return IntakeOutcome.PARSED
