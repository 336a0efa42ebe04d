"""
Date parsing utilities.

Two entry points:

- parse_local_date(): resolve one metadata value ("2025-08-15",
  "15/08/2025 14:00", ...) to epoch milliseconds in local time.
- find_date_expressions(): scan free text for English date expressions and
  return DateMatch tuples, the shape TimeParsingService expects from any
  date grammar.
"""

import calendar
import logging
import re
from datetime import date, datetime, time, timedelta
from typing import List, NamedTuple, Optional, Sequence, Set

log = logging.getLogger(__name__)


class DateMatch(NamedTuple):
    """A date expression found in text."""

    text: str
    index: int
    date: datetime


# ---------------------------------------------------------------------------
# Epoch helpers
# ---------------------------------------------------------------------------

def to_epoch_ms(value: datetime) -> int:
    """Naive datetimes are read as local time."""
    return int(round(value.timestamp() * 1000))


def from_epoch_ms(ms: float) -> datetime:
    return datetime.fromtimestamp(ms / 1000)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time())


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_years(value: datetime, years: int) -> datetime:
    return add_months(value, years * 12)


# ---------------------------------------------------------------------------
# Metadata values
# ---------------------------------------------------------------------------

_DATE_TIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M",
    "%d-%m-%Y %H:%M",
    "%d/%m/%Y %H:%M",
    "%m-%d-%Y %H:%M",
    "%m/%d/%Y %H:%M",
    "%Y.%m.%d %H:%M",
    "%Y%m%d%H%M%S",
    "%Y%m%d_%H%M%S",
)

_DATE_ONLY_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%m-%d-%Y",
    "%m/%d/%Y",
    "%Y.%m.%d",
    "%d.%m.%Y",
    "%Y年%m月%d日",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)

_HAS_TIME_RE = re.compile(r"\d{1,2}:\d{2}")
_FORMAT_HAS_TIME_RE = re.compile(r"%[HI]")
_ISO_DATE_TIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:\s+\d{1,2}:\d{2})?$")


def parse_local_date(date_string: str, custom_formats: Sequence[str] = ()) -> Optional[int]:
    """
    Parse a date metadata value into epoch milliseconds (local time).

    Custom strptime formats are tried first. Without time information in
    both the string and the matching format, the result is midnight.

    Returns:
        Epoch milliseconds, or None if no format matches
    """
    if not date_string:
        return None

    date_string = date_string.strip()
    if "{{" in date_string or "}}" in date_string:
        return None

    has_time = bool(_HAS_TIME_RE.search(date_string))
    defaults = (
        _DATE_TIME_FORMATS + _DATE_ONLY_FORMATS
        if has_time
        else _DATE_ONLY_FORMATS + _DATE_TIME_FORMATS
    )

    for fmt in tuple(custom_formats) + defaults:
        try:
            parsed = datetime.strptime(date_string, fmt)
        except ValueError:
            continue
        if not has_time and not _FORMAT_HAS_TIME_RE.search(fmt):
            parsed = start_of_day(parsed)
        return to_epoch_ms(parsed)

    try:
        iso = datetime.fromisoformat(date_string)
    except ValueError:
        log.warning("Could not parse date: %s", date_string)
        return None

    if iso.tzinfo is None and not has_time:
        iso = start_of_day(iso)
    return to_epoch_ms(iso)


def coerce_to_datetime(value) -> Optional[datetime]:
    """
    Read epoch milliseconds, a datetime or a ``YYYY-MM-DD[ HH:MM]`` string.

    Returns None for anything unreadable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return from_epoch_ms(value)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if _ISO_DATE_TIME_RE.match(text):
            if " " in text:
                return datetime.strptime(re.sub(r"\s+", " ", text), "%Y-%m-%d %H:%M")
            return datetime.strptime(text, "%Y-%m-%d")
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


# ---------------------------------------------------------------------------
# Free-text English date expressions
# ---------------------------------------------------------------------------

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

_WEEKDAY_ALT = "|".join(WEEKDAYS)
_MONTH_ALT = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)

# Most specific first; a later pattern never re-matches characters an earlier
# one has claimed.
_ISO_RE = re.compile(
    r"\b(\d{4})-(\d{2})-(\d{2})(?:[ T](\d{1,2}):([0-5]\d)(?::([0-5]\d))?)?\b"
)
_MONTH_DAY_RE = re.compile(
    rf"\b({_MONTH_ALT})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?(?:,?\s+(\d{{4}}))?\b",
    re.IGNORECASE,
)
_DAY_MONTH_RE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTH_ALT})\.?(?:,?\s+(\d{{4}}))?\b",
    re.IGNORECASE,
)
_RELATIVE_WEEKDAY_RE = re.compile(
    rf"\b(next|last|this)\s+({_WEEKDAY_ALT}|week|month|year)\b", re.IGNORECASE
)
_IN_N_RE = re.compile(r"\bin\s+(\d+)\s+(days?|weeks?|months?|years?)\b", re.IGNORECASE)
_N_AGO_RE = re.compile(r"\b(\d+)\s+(days?|weeks?|months?|years?)\s+ago\b", re.IGNORECASE)
_DAY_WORD_RE = re.compile(r"\b(today|tonight|tomorrow|yesterday)\b", re.IGNORECASE)
_WEEKDAY_RE = re.compile(rf"\b({_WEEKDAY_ALT})\b", re.IGNORECASE)


def _month_number(token: str) -> int:
    return _MONTHS[token.lower()[:3]]


def _weekday_date(today: datetime, weekday: int, mode: Optional[str]) -> datetime:
    """
    Resolve a weekday name.

    Bare names and "next" move forward (a bare name never resolves to today);
    "this" stays in the current Monday-based week; "last" is that weekday one
    week earlier.
    """
    days_ahead = weekday - today.weekday()
    if mode == "this":
        return today + timedelta(days=days_ahead)
    if mode == "last":
        return today + timedelta(days=days_ahead - 7)
    if days_ahead <= 0 or mode == "next":
        days_ahead += 7
    return today + timedelta(days=days_ahead)


def _unit_offset(today: datetime, amount: int, unit: str) -> datetime:
    unit = unit.lower().rstrip("s")
    if unit == "day":
        return today + timedelta(days=amount)
    if unit == "week":
        return today + timedelta(weeks=amount)
    if unit == "month":
        return add_months(today, amount)
    return add_years(today, amount)


def _resolve_iso(m: re.Match, today: datetime) -> Optional[datetime]:
    year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    hour = int(m.group(4)) if m.group(4) else 0
    minute = int(m.group(5)) if m.group(5) else 0
    second = int(m.group(6)) if m.group(6) else 0
    if hour > 23:
        return None
    return datetime(year, month, day, hour, minute, second)


def _resolve_month_day(month_token: str, day: int, year_token: Optional[str], today: datetime) -> datetime:
    month = _month_number(month_token)
    if year_token:
        return datetime(int(year_token), month, day)
    parsed = datetime(today.year, month, day)
    if parsed < today:
        parsed = parsed.replace(year=today.year + 1)
    return parsed


def _resolve_relative(m: re.Match, today: datetime) -> datetime:
    mode, target = m.group(1).lower(), m.group(2).lower()
    if target in WEEKDAYS:
        return _weekday_date(today, WEEKDAYS.index(target), mode)
    step = {"next": 1, "last": -1, "this": 0}[mode]
    return _unit_offset(today, step, target)


def find_date_expressions(text: str, reference: Optional[datetime] = None) -> List[DateMatch]:
    """
    Find English date expressions in free text.

    Supports:
    - ISO 8601 dates, optionally followed by a clock time: "2026-02-15 14:00"
    - Month names: "March 15", "Mar 15, 2027", "15 March"
    - Day words: "today", "tomorrow", "yesterday"
    - Weekdays: "Friday", "next Monday", "last tuesday", "this sunday"
    - Relative: "in 3 days", "in 2 weeks", "next month", "2 days ago"

    Args:
        text: Free text to scan
        reference: "Now"; defaults to the current local time

    Returns:
        Matches ordered by position
    """
    today = start_of_day(reference or datetime.now())
    claimed: Set[int] = set()
    results: List[DateMatch] = []

    def claim(m: re.Match, group: int = 0) -> bool:
        span = range(m.start(group), m.end(group))
        if any(i in claimed for i in span):
            return False
        claimed.update(span)
        return True

    def add(m: re.Match, value: Optional[datetime], group: int = 0) -> None:
        if value is None:
            return
        if claim(m, group):
            results.append(DateMatch(m.group(group), m.start(group), value))

    for m in _ISO_RE.finditer(text):
        try:
            add(m, _resolve_iso(m, today))
        except ValueError:
            continue

    for m in _MONTH_DAY_RE.finditer(text):
        try:
            add(m, _resolve_month_day(m.group(1), int(m.group(2)), m.group(3), today))
        except ValueError:
            continue

    for m in _DAY_MONTH_RE.finditer(text):
        try:
            add(m, _resolve_month_day(m.group(2), int(m.group(1)), m.group(3), today))
        except ValueError:
            continue

    for m in _RELATIVE_WEEKDAY_RE.finditer(text):
        add(m, _resolve_relative(m, today))

    for m in _IN_N_RE.finditer(text):
        add(m, _unit_offset(today, int(m.group(1)), m.group(2)))

    for m in _N_AGO_RE.finditer(text):
        add(m, _unit_offset(today, -int(m.group(1)), m.group(2)))

    for m in _DAY_WORD_RE.finditer(text):
        word = m.group(1).lower()
        offset = {"today": 0, "tonight": 0, "tomorrow": 1, "yesterday": -1}[word]
        add(m, today + timedelta(days=offset))

    for m in _WEEKDAY_RE.finditer(text):
        add(m, _weekday_date(today, WEEKDAYS.index(m.group(1).lower()), None))

    results.sort(key=lambda r: r.index)
    return results


def contains_cjk(text: str) -> bool:
    return any("一" <= ch <= "鿿" for ch in text)
