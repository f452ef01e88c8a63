"""Reminder store contract."""

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Reminder:
    """A single pending reminder for one user."""

    due_at_ms: int
    task: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        if not self.task or not self.task.strip():
            raise ValueError("Reminder task text must not be empty")

    def to_json(self) -> str:
        return json.dumps(
            {"id": self.id, "due_at_ms": self.due_at_ms, "task": self.task},
            ensure_ascii=False,
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str) -> "Reminder":
        data = json.loads(raw)
        return cls(due_at_ms=int(data["due_at_ms"]), task=data["task"], id=data["id"])


class ReminderStore(ABC):
    """Per-user reminder lists ordered by due time."""

    @abstractmethod
    def insert(self, user_key: str, reminder: Reminder) -> None:
        """Add a reminder to the user's list."""

    @abstractmethod
    def user_keys(self) -> List[str]:
        """Every user key that currently has at least one reminder."""

    @abstractmethod
    def due_before(self, user_key: str, cutoff_ms: int) -> List[Reminder]:
        """Reminders for user_key with due_at_ms <= cutoff_ms, earliest first."""

    @abstractmethod
    def remove_due_before(
        self, user_key: str, cutoff_ms: int, reminders: Optional[Sequence[Reminder]] = None
    ) -> int:
        """
        Delete the user's reminders due at or before cutoff_ms.

        When reminders is given, only those entries are deleted, so anything
        inserted after they were read stays for the next sweep.

        Returns:
            Number of reminders removed.
        """

    def scan_due(self, cutoff_ms: int) -> Iterator[Tuple[str, Reminder]]:
        """Yield (user_key, reminder) for every due reminder across all users."""
        for user_key in self.user_keys():
            for reminder in self.due_before(user_key, cutoff_ms):
                yield user_key, reminder

    def close(self) -> None:
        """Release connections held by the store."""
