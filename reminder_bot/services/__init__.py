"""Services for the reminder bot."""

from .time_parser import TimeTaskExtractor, ParseResult, FILLER_PATTERNS, PART_OF_DAY_HOURS

__all__ = ["TimeTaskExtractor", "ParseResult", "FILLER_PATTERNS", "PART_OF_DAY_HOURS"]
