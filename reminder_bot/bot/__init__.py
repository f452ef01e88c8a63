"""Chat-facing handlers."""

from .handlers.reminders import IntakeHandler, IntakeOutcome

__all__ = ["IntakeHandler", "IntakeOutcome"]
