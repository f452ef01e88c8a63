"""In-process reminder store for tests and local development."""

from typing import Dict, List, Optional, Sequence

from .base import Reminder, ReminderStore


class MemoryReminderStore(ReminderStore):
    def __init__(self):
        self._lists: Dict[str, List[Reminder]] = {}

    def insert(self, user_key: str, reminder: Reminder) -> None:
        entries = self._lists.setdefault(user_key, [])
        entries.append(reminder)
        # Stable sort keeps insertion order between equal due times
        entries.sort(key=lambda r: r.due_at_ms)

    def user_keys(self) -> List[str]:
        return sorted(self._lists)

    def due_before(self, user_key: str, cutoff_ms: int) -> List[Reminder]:
        return [r for r in self._lists.get(user_key, []) if r.due_at_ms <= cutoff_ms]

    def remove_due_before(
        self, user_key: str, cutoff_ms: int, reminders: Optional[Sequence[Reminder]] = None
    ) -> int:
        entries = self._lists.get(user_key)
        if not entries:
            return 0

        if reminders is None:
            kept = [r for r in entries if r.due_at_ms > cutoff_ms]
        else:
            ids = {r.id for r in reminders if r.due_at_ms <= cutoff_ms}
            kept = [r for r in entries if r.id not in ids]

        removed = len(entries) - len(kept)
        if kept:
            self._lists[user_key] = kept
        else:
            del self._lists[user_key]
        return removed
