"""Extract a due time and a task description from a free-text message."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import dateparser
import pytz
from dateparser.search import search_dates

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_TASK = "Reminder"

# Directive phrases removed from the message once the time span is gone.
# Longer phrases come first so "remind me to" wins over "remind me".
FILLER_PATTERNS: Dict[str, List[str]] = {
    "en": [
        r"\bremind me to\b",
        r"\bremind me\b",
        r"\bremember to\b",
        r"\bremember\b",
        r"\bdon'?t forget to\b",
        r"\bhelp me\b",
        r"\bplease\b",
    ],
    "zh": [
        r"提醒我",
        r"提醒",
        r"記得要",
        r"记得要",
        r"記得",
        r"记得",
        r"幫我",
        r"帮我",
    ],
}

LEADING_CONNECTORS = re.compile(r"^(?:(?:to|that|about|of)\b\s*)+", re.IGNORECASE)
TRAILING_CONNECTORS = re.compile(r"(?:\s*\b(?:on|at|by|in))+$", re.IGNORECASE)
EDGE_PUNCTUATION = " \t\n,.;:!?-，。！？、"

# Text allowed between two date fragments that belong to the same expression,
# e.g. "tomorrow" + "at 8pm".
_JOINER = re.compile(r"\s*(?:,|\bat\b|\bon\b)?\s*", re.IGNORECASE)

# Hour used for a part of the day when no clock time is given ("friday afternoon").
PART_OF_DAY_HOURS: Dict[str, int] = {
    "morning": 9,
    "afternoon": 15,
    "evening": 19,
    "tonight": 20,
    "night": 21,
}
# A bare clock time next to one of these means pm ("8 in the evening")
PM_PARTS_OF_DAY = {"afternoon", "evening", "tonight", "night"}

_PARTS = "|".join(PART_OF_DAY_HOURS)
_PART_OF_DAY = re.compile(rf"\b(?:this\s+|in\s+the\s+)?({_PARTS})\b", re.IGNORECASE)
_PART_OF_DAY_AFTER = re.compile(
    rf"\s*,?\s*(?:this\s+|in\s+the\s+|at\s+)?({_PARTS})\b", re.IGNORECASE
)
_PART_OF_DAY_BEFORE = re.compile(
    rf"\b(?:this\s+)?({_PARTS})\s*,?\s*(?:at\s+|on\s+)?$", re.IGNORECASE
)
_MERIDIEM = re.compile(r"\s*[ap]\.?m\.?(?![a-z])", re.IGNORECASE)
_BARE_CLOCK = re.compile(r"(^|\bat\s+)(1[01]|[1-9])(:[0-5]\d)?\s*$", re.IGNORECASE)
_CLOCK_TIME = re.compile(
    r"\d:\d{2}|\d\s*[ap]\.?m\b|\bat\s+\d{1,2}\b|^\d{1,2}$|\bnoon\b|\bmidnight\b",
    re.IGNORECASE,
)

# Fragments that name no reminder time at all
_IGNORED_FRAGMENT = re.compile(r"(?:right\s+)?now", re.IGNORECASE)


@dataclass(frozen=True)
class ParseResult:
    """A due time and the cleaned-up task text."""

    due_at: datetime
    task: str

    @property
    def due_at_ms(self) -> int:
        return int(self.due_at.timestamp() * 1000)


class TimeTaskExtractor:
    """Find the time expression in a message and derive the task from the rest."""

    def __init__(
        self,
        languages: Sequence[str] = ("en",),
        timezone: Optional[str] = None,
        placeholder_task: str = DEFAULT_PLACEHOLDER_TASK,
        filler_patterns: Optional[Dict[str, List[str]]] = None,
    ):
        self.languages = list(languages)
        self.placeholder_task = placeholder_task
        self._tz = pytz.timezone(timezone) if timezone else None

        table = filler_patterns if filler_patterns is not None else FILLER_PATTERNS
        patterns = []
        for language in self.languages:
            patterns.extend(table.get(language, []))
        self._fillers = [re.compile(p, re.IGNORECASE) for p in patterns]

    def extract(self, utterance: str, reference_now: datetime) -> Optional[ParseResult]:
        """
        Parse an utterance relative to reference_now.

        Args:
            utterance: Raw message text, e.g. "remind me tomorrow at 8pm to take medicine"
            reference_now: Instant that relative expressions are resolved against

        Returns:
            ParseResult, or None when the text contains no time expression.
        """
        if not utterance or not utterance.strip():
            return None

        base = self._wall_clock(reference_now)
        settings = {
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": base,
            "RETURN_AS_TIMEZONE_AWARE": False,
        }

        matches = search_dates(utterance, languages=self.languages, settings=settings) or []

        located = self._locate(utterance, matches)
        if located is None:
            return None
        start, end, found = located

        due = self._resolve(utterance[start:end], base, settings, found)
        if due is None:
            return None

        # A time of day that already passed today means the next occurrence
        if due <= base and due.date() == base.date():
            due += timedelta(days=1)

        logger.debug(f"Matched time expression '{utterance[start:end]}' -> {due}")
        task = self.derive_task(utterance[:start] + " " + utterance[end:])
        return ParseResult(due_at=self._localize(due, reference_now), task=task)

    def derive_task(self, remainder: str) -> str:
        """Strip filler phrases and dangling connectors from what is left of the message."""
        text = " ".join(remainder.split())
        for pattern in self._fillers:
            text = pattern.sub(" ", text)
            text = " ".join(text.split())

        text = text.strip(EDGE_PUNCTUATION)
        text = LEADING_CONNECTORS.sub("", text)
        text = TRAILING_CONNECTORS.sub("", text)
        text = text.strip(EDGE_PUNCTUATION)

        return text or self.placeholder_task

    def _locate(
        self, text: str, matches: List[Tuple[str, datetime]]
    ) -> Optional[Tuple[int, int, Optional[datetime]]]:
        """
        Return the span of the first time expression.

        search_dates is only trusted to find where the expression is; the third
        item is its value, kept as a last resort when re-parsing the span fails.
        """
        spans = []
        cursor = 0
        lowered = text.lower()
        for fragment, value in matches:
            stripped = fragment.strip()
            if _IGNORED_FRAGMENT.fullmatch(stripped) or _PART_OF_DAY.fullmatch(stripped):
                continue
            start = lowered.find(fragment.lower(), cursor)
            if start < 0:
                continue
            end = start + len(fragment)
            spans.append((start, end, value))
            cursor = end

        if not spans:
            standalone = _PART_OF_DAY.search(text)
            if standalone is None:
                return None
            return standalone.start(), standalone.end(), None

        start, end, found = spans[0]
        for next_start, next_end, _ in spans[1:]:
            if not _JOINER.fullmatch(text[end:next_start]):
                break
            end = next_end

        meridiem = _MERIDIEM.match(text, end)
        if meridiem:
            end = meridiem.end()

        after = _PART_OF_DAY_AFTER.match(text, end)
        if after:
            end = after.end()
        else:
            before = _PART_OF_DAY_BEFORE.search(text, 0, start)
            if before:
                start = before.start()

        return start, end, found

    def _resolve(
        self, span: str, base: datetime, settings: dict, found: Optional[datetime]
    ) -> Optional[datetime]:
        """Parse the located span, applying any part-of-day word it carries."""
        part = _PART_OF_DAY.search(span)
        date_text = span
        if part:
            date_text = " ".join((span[: part.start()] + " " + span[part.end():]).split())
            date_text = TRAILING_CONNECTORS.sub("", date_text.strip(EDGE_PUNCTUATION))
            date_text = date_text.strip(EDGE_PUNCTUATION)
            if part.group(1).lower() in PM_PARTS_OF_DAY:
                date_text = _BARE_CLOCK.sub(r"\1\2\3pm", date_text)

        if date_text:
            due = dateparser.parse(date_text, languages=self.languages, settings=settings)
            if due is None:
                due = found
        else:
            due = base
        if due is None:
            return None

        if part and not _CLOCK_TIME.search(date_text):
            hour = PART_OF_DAY_HOURS[part.group(1).lower()]
            due = due.replace(hour=hour, minute=0, second=0, microsecond=0)
        return due

    def _wall_clock(self, reference_now: datetime) -> datetime:
        """Naive local wall-clock time used as the parsing base."""
        if reference_now.tzinfo is not None and self._tz is not None:
            reference_now = reference_now.astimezone(self._tz)
        return reference_now.replace(tzinfo=None)

    def _localize(self, due: datetime, reference_now: datetime) -> datetime:
        if self._tz is not None:
            return self._tz.localize(due)
        if reference_now.tzinfo is not None:
            return due.replace(tzinfo=reference_now.tzinfo)
        return due
