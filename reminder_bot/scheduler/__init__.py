"""Due reminder sweep."""

from .jobs import DueSweepDispatcher, SweepReport, format_notification

__all__ = ["DueSweepDispatcher", "SweepReport", "format_notification"]
