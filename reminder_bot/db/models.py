"""SQLAlchemy database models."""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, BigInteger, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ReminderEntry(Base):
    """Pending reminders, one row per reminder."""
    __tablename__ = "reminders"

    id = Column(String(32), primary_key=True)
    user_key = Column(String(128), nullable=False)
    due_at_ms = Column(BigInteger, nullable=False)
    task = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (Index("ix_reminders_user_due", "user_key", "due_at_ms"),)

    def __repr__(self):
        return f"<ReminderEntry(id={self.id}, user_key='{self.user_key}', due_at_ms={self.due_at_ms})>"
