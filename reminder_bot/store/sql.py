"""SQLite reminder store built on SQLAlchemy."""

from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from reminder_bot.db import ReminderEntry, init_db, session_scope
from reminder_bot.errors import StoreUnavailable
from .base import Reminder, ReminderStore


class SqlReminderStore(ReminderStore):
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._session_factory = init_db(db_path)

    def insert(self, user_key: str, reminder: Reminder) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.add(
                    ReminderEntry(
                        id=reminder.id,
                        user_key=user_key,
                        due_at_ms=reminder.due_at_ms,
                        task=reminder.task,
                    )
                )
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Could not save reminder for {user_key}: {e}") from e

    def user_keys(self) -> List[str]:
        try:
            with session_scope(self._session_factory) as session:
                rows = (
                    session.query(ReminderEntry.user_key)
                    .distinct()
                    .order_by(ReminderEntry.user_key)
                    .all()
                )
                return [row[0] for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Could not list reminder users: {e}") from e

    def due_before(self, user_key: str, cutoff_ms: int) -> List[Reminder]:
        try:
            with session_scope(self._session_factory) as session:
                entries = (
                    session.query(ReminderEntry)
                    .filter(
                        ReminderEntry.user_key == user_key,
                        ReminderEntry.due_at_ms <= cutoff_ms,
                    )
                    .order_by(ReminderEntry.due_at_ms.asc(), ReminderEntry.created_at.asc())
                    .all()
                )
                return [Reminder(due_at_ms=e.due_at_ms, task=e.task, id=e.id) for e in entries]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Could not read reminders for {user_key}: {e}") from e

    def remove_due_before(
        self, user_key: str, cutoff_ms: int, reminders: Optional[Sequence[Reminder]] = None
    ) -> int:
        try:
            with session_scope(self._session_factory) as session:
                query = session.query(ReminderEntry).filter(
                    ReminderEntry.user_key == user_key,
                    ReminderEntry.due_at_ms <= cutoff_ms,
                )
                if reminders is not None:
                    ids = [r.id for r in reminders]
                    if not ids:
                        return 0
                    query = query.filter(ReminderEntry.id.in_(ids))
                return query.delete(synchronize_session=False)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Could not remove reminders for {user_key}: {e}") from e
