"""Permissive natural-language date and time resolution.

Relative expressions are anchored to a reference date (local midnight). The
parser never raises: anything it cannot understand falls back to the
reference, and the calendar API downstream rejects values that make no sense.
"""

import re
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from dateutil.parser import ParserError
from dateutil.parser import parse as dateutil_parse

from calendar_assistant.utils.logging import get_logger

logger = get_logger(__name__)

# Checked in this order, first match wins
RELATIVE_KEYWORDS: tuple[tuple[str, int], ...] = (
    ("tomorrow", 1),
    ("yesterday", -1),
    ("today", 0),
    ("next week", 7),
)

_HOUR_PATTERN = re.compile(r"(\d+)\s*(?::|am|pm)", re.IGNORECASE)
_CLOCK_PATTERN = re.compile(r"(\d+)\s*(?::([0-5][0-9]))?\s*(am|pm)?", re.IGNORECASE)
_MERIDIEM_PATTERN = re.compile(r"\b(am|pm)\b", re.IGNORECASE)


def parse_absolute(text: str, tz: tzinfo, default: datetime | None = None) -> datetime | None:
    """Parse an absolute date/time string, or return None.

    ISO values are tried first, then dateutil for spelled-out dates such as
    "July 4, 2025". Fields missing from the text come from ``default`` (today at
    midnight when omitted). Naive values are placed in ``tz``; values with an
    explicit offset are kept as given.
    """
    candidate = text.strip()
    if not candidate:
        return None

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        fallback = (default or datetime.now(tz)).replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
        try:
            parsed = dateutil_parse(candidate, default=fallback, fuzzy=False)
        except (ParserError, OverflowError, ValueError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _keyword_offset(text: str) -> int | None:
    lowered = text.lower()
    for keyword, days in RELATIVE_KEYWORDS:
        if keyword in lowered:
            return days
    return None


def resolve_date(text: str, reference: datetime) -> datetime:
    """Resolve a day expression such as "tomorrow" or "2025-06-28".

    Args:
        text: Free-form date text
        reference: Aware datetime used as "today"

    Returns:
        The reference shifted by a relative keyword, the parsed absolute date,
        or the reference itself when nothing matches.
    """
    offset = _keyword_offset(text)
    if offset is not None:
        return reference + timedelta(days=offset)

    absolute = parse_absolute(text, reference.tzinfo or ZoneInfo("UTC"), default=reference)
    if absolute is not None:
        return absolute

    logger.debug(f"Could not resolve date from {text!r}, using reference date")
    return reference


def resolve_datetime(text: str, reference: datetime) -> datetime:
    """Resolve a date/time expression such as "tomorrow at 2:30pm".

    An absolute value (ISO or spelled out) wins outright. Otherwise the day
    comes from the relative keywords and the time of day from the first hour followed by
    ``:``, ``am`` or ``pm``. Without a time of day the result is midnight.
    """
    absolute = parse_absolute(text, reference.tzinfo or ZoneInfo("UTC"), default=reference)
    if absolute is not None:
        return absolute

    offset = _keyword_offset(text)
    base = reference + timedelta(days=offset or 0)

    hour_match = _HOUR_PATTERN.search(text)
    if not hour_match:
        return base

    clock = _CLOCK_PATTERN.match(text, hour_match.start())
    if clock is None:
        return base
    try:
        hour = int(clock.group(1))
    except ValueError:
        # More digits than int() accepts
        return base
    minutes = int(clock.group(2)) if clock.group(2) else 0

    meridiem = clock.group(3)
    if meridiem is None:
        loose = _MERIDIEM_PATTERN.search(text, clock.end())
        meridiem = loose.group(1) if loose else None

    if meridiem and meridiem.lower() == "pm" and hour < 12:
        hour += 12
    elif meridiem and meridiem.lower() == "am" and hour == 12:
        hour = 0

    # Hours past 23 roll over into the next day(s)
    midnight = base.replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        return midnight + timedelta(hours=hour, minutes=minutes)
    except OverflowError:
        logger.debug(f"Hour {hour} out of range in {text!r}, using {base.date()}")
        return base


class DateTimeResolver:
    """Resolver bound to a time zone and a source for "today"."""

    def __init__(
        self,
        tz: tzinfo | str = "UTC",
        reference_date: date | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the resolver.

        Args:
            tz: Time zone (or IANA name) relative expressions are resolved in
            reference_date: Fixed "today"; when omitted the clock decides
            clock: Returns the current aware time, defaults to datetime.now in ``tz``
        """
        self.tz: tzinfo = ZoneInfo(tz) if isinstance(tz, str) else tz
        self.reference_date = reference_date
        self.clock = clock or (lambda: datetime.now(self.tz))

    @property
    def timezone_name(self) -> str:
        """IANA name of the zone, as the calendar API expects it."""
        return getattr(self.tz, "key", None) or str(self.tz)

    def now(self) -> datetime:
        return self.clock().astimezone(self.tz)

    def today(self) -> datetime:
        """Reference date at local midnight."""
        day = self.reference_date or self.now().date()
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def resolve_date(self, text: str) -> datetime:
        return resolve_date(text, self.today())

    def resolve_datetime(self, text: str) -> datetime:
        return resolve_datetime(text, self.today())
