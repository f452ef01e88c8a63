"""Due reminder sweep, run once per external trigger tick."""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from reminder_bot.messaging import Messenger
from reminder_bot.store import Reminder, ReminderStore

logger = logging.getLogger(__name__)

DEFAULT_GIVE_UP_AFTER_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def format_notification(reminder: Reminder) -> str:
    return f"⏰ Reminder: {reminder.task}"


@dataclass
class SweepReport:
    """What one sweep did."""

    cutoff_ms: int
    users_scanned: int = 0
    sent: int = 0
    failed: int = 0
    dropped: int = 0
    removal_failures: int = 0
    read_failures: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class DueSweepDispatcher:
    """
    Push every reminder due at or before "now" and remove what was delivered.

    A failed push leaves the reminder in the store so the next tick retries it,
    unless it is already older than give_up_after_ms, in which case it is
    removed and logged as dropped.
    """

    def __init__(
        self,
        store: ReminderStore,
        messenger: Messenger,
        clock_ms: Optional[Callable[[], int]] = None,
        give_up_after_ms: int = DEFAULT_GIVE_UP_AFTER_MS,
    ):
        self.store = store
        self.messenger = messenger
        self.clock_ms = clock_ms or now_ms
        self.give_up_after_ms = give_up_after_ms

    async def sweep(self) -> SweepReport:
        """Run one sweep. Raises StoreUnavailable if users cannot be listed."""
        cutoff = self.clock_ms()
        report = SweepReport(cutoff_ms=cutoff)

        user_keys = self.store.user_keys()
        report.users_scanned = len(user_keys)

        await asyncio.gather(*(self._dispatch_user(user_key, cutoff, report) for user_key in user_keys))

        if report.sent or report.failed or report.removal_failures or report.read_failures:
            logger.info(
                f"Sweep at {cutoff}: {report.sent} sent, {report.failed} failed, "
                f"{report.dropped} dropped, {report.removal_failures} removal failures, "
                f"{report.read_failures} read failures across {report.users_scanned} users"
            )
        return report

    async def _dispatch_user(self, user_key: str, cutoff: int, report: SweepReport) -> None:
        try:
            due = self.store.due_before(user_key, cutoff)
        except Exception as e:
            report.read_failures += 1
            logger.error(f"Could not read due reminders for {user_key}: {e}")
            return

        if not due:
            return

        finished = []
        for reminder in due:
            try:
                await self.messenger.push(user_key, format_notification(reminder))
                finished.append(reminder)
                report.sent += 1
                logger.info(f"Sent reminder {reminder.id} to {user_key}")
            except Exception as e:
                report.failed += 1
                if cutoff - reminder.due_at_ms > self.give_up_after_ms:
                    finished.append(reminder)
                    report.dropped += 1
                    logger.error(
                        f"Dropping reminder {reminder.id} for {user_key} after repeated "
                        f"delivery failures: {e}"
                    )
                else:
                    logger.warning(
                        f"Failed to send reminder {reminder.id} to {user_key}, "
                        f"will retry next sweep: {e}"
                    )

        if not finished:
            return

        try:
            self.store.remove_due_before(user_key, cutoff, finished)
        except Exception as e:
            report.removal_failures += 1
            logger.error(
                f"Sent {len(finished)} reminder(s) to {user_key} but could not remove them; "
                f"they may be sent again on the next sweep: {e}"
            )
