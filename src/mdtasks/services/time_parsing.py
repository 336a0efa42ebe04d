"""
Clock-time extraction and date-expression parsing for free text.

TimeParsingService has two entry points:

    parse_time_components(text)   -> TimeComponentsResult
        Clock times only ("14:00", "2:30 PM", "9:00-10:30"), each assigned
        a role (start/due/scheduled) from the surrounding text.

    parse_time_expressions(text)  -> ParsedTimeResult
        Date expressions found by the date grammar, paired with the clock
        time next to them, plus the text with those expressions removed.

Role classification looks 200 characters back and 20 forward from a match.
Emoji markers before the match decide first (🛫 start, 📅 due, ⏳ scheduled),
then the configured keyword lists.
"""

import copy
import logging
import re
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from mdtasks.config import DEFAULT_TIME_PARSING_CONFIG, TimeParsingConfig
from mdtasks.errors import TimeParsingError, TimeParsingFailure
from mdtasks.models.time import (
    DUE_TIME,
    END_TIME,
    SCHEDULED_TIME,
    START_TIME,
    LineParseResult,
    ParsedTimeResult,
    TimeComponent,
    TimeComponentsResult,
    TimeExpression,
    TimeMatch,
    TimeRole,
)
from mdtasks.services.chinese_dates import find_chinese_date_expressions
from mdtasks.utils.dates import DateMatch, contains_cjk, find_date_expressions, start_of_day

log = logging.getLogger(__name__)

DateFinder = Callable[[str, Optional[datetime]], List[DateMatch]]

CONTEXT_BEFORE = 200
CONTEXT_AFTER = 20
TIME_MATCH_SLACK = 10
DEFAULT_CACHE_SIZE = 100

START_EMOJI = "🛫"
DUE_EMOJI = "📅"
SCHEDULED_EMOJI = "⏳"

_RANGE_SEP = r"\s*[-~～]\s*"

TIME_24H_RE = re.compile(r"\b([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?\b", re.ASCII)
TIME_12H_RE = re.compile(
    r"\b(1[0-2]|0?[1-9]):([0-5]\d)(?::([0-5]\d))?\s*(AM|PM|am|pm)\b", re.ASCII
)
TIME_RANGE_RE = re.compile(
    r"\b([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?" + _RANGE_SEP
    + r"([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?\b",
    re.ASCII,
)
TIME_RANGE_12H_RE = re.compile(
    r"\b(1[0-2]|0?[1-9]):([0-5]\d)(?::([0-5]\d))?\s*(AM|PM|am|pm)?" + _RANGE_SEP
    + r"(1[0-2]|0?[1-9]):([0-5]\d)(?::([0-5]\d))?\s*(AM|PM|am|pm)\b",
    re.ASCII,
)

_SINGLE_12H_RE = re.compile(r"^(1[0-2]|0?[1-9]):([0-5]\d)(?::([0-5]\d))?\s*(AM|PM)$", re.I)
_SINGLE_24H_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")
_RANGE_SPLIT_RE = re.compile(_RANGE_SEP)
_DATE_TIME_FRAGMENT_RE = re.compile(r"(\d{4}-\d{2}-\d{2})\s+(\d{1,2}):([0-5]\d)(?::([0-5]\d))?")

_TRAILING_PUNCT_RE = re.compile(r"[,;]\s*$")
_LEADING_PUNCT_RE = re.compile(r"^[,;]\s*")


def parse_time_component(time_text: str) -> Optional[TimeComponent]:
    """
    Parse one clock time, 12-hour form first.

    "2:30 PM" -> 14:30, "12:05 am" -> 00:05, "09:15:30" -> 09:15:30.
    """
    cleaned = time_text.strip()

    m = _SINGLE_12H_RE.match(cleaned)
    if m:
        hour = int(m.group(1))
        period = m.group(4).upper()
        if period == "PM" and hour != 12:
            hour += 12
        elif period == "AM" and hour == 12:
            hour = 0
        second = int(m.group(3)) if m.group(3) else None
        return TimeComponent(hour, int(m.group(2)), second, original_text=cleaned)

    m = _SINGLE_24H_RE.match(cleaned)
    if m:
        second = int(m.group(3)) if m.group(3) else None
        return TimeComponent(int(m.group(1)), int(m.group(2)), second, original_text=cleaned)

    return None


def _is_rejected(text: str, index: int, length: int) -> bool:
    """A time glued to ":digit", or touching a "--" separator, is not a time."""
    end = index + length
    next_char = text[end:end + 1]
    following = text[end + 1:end + 2]
    if next_char == ":" and following.isdigit():
        return True
    if text[end:end + 2] == "--":
        return True
    return index >= 2 and text[index - 2:index] == "--"


class TimeParsingService:
    """
    Extracts clock times and date expressions from text.

    Results of parse_time_expressions() are memoised per (text, config,
    reference) in a FIFO cache of cache_size entries.

    Args:
        config: TimeParsingConfig
        date_finder: Primary date grammar; any callable returning DateMatch
            tuples for (text, reference)
        fallback_finder: Grammar tried when the primary one finds nothing in
            CJK text
    """

    def __init__(
        self,
        config: TimeParsingConfig = DEFAULT_TIME_PARSING_CONFIG,
        date_finder: DateFinder = find_date_expressions,
        fallback_finder: DateFinder = find_chinese_date_expressions,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        self.config = config
        self.date_finder = date_finder
        self.fallback_finder = fallback_finder
        self._cache_size = cache_size
        self._cache: Dict[str, ParsedTimeResult] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Configuration and cache
    # ------------------------------------------------------------------

    def update_config(self, **changes) -> TimeParsingConfig:
        """Replace fields of the active config; returns the new config."""
        self.config = replace(self.config, **changes)
        return self.config

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def _cache_key(self, text: str, reference: Optional[datetime]) -> str:
        ref = reference.isoformat() if reference else ""
        return f"{text}|{self.config.signature()}|{ref}"

    def _store(self, key: str, result: ParsedTimeResult) -> None:
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._cache_size:
                del self._cache[next(iter(self._cache))]
            self._cache[key] = result

    # ------------------------------------------------------------------
    # Clock times
    # ------------------------------------------------------------------

    def parse_time_components(self, text: str, strict: bool = False) -> TimeComponentsResult:
        """
        Extract role-keyed clock times.

        An internal failure comes back as an invalid-format entry in
        ``errors`` with no components, or is raised as TimeParsingFailure
        when strict is set.
        """
        try:
            components, _ = self.extract_time_components(text)
        except Exception as e:
            log.warning("Time component extraction failed for %r: %s", text, e)
            error = TimeParsingError(
                original_text=text,
                position=0,
                message=str(e) or "Unknown error during time parsing",
            )
            if strict:
                raise TimeParsingFailure(error) from e
            return TimeComponentsResult(errors=[error])
        return TimeComponentsResult(time_components=components)

    def extract_time_components(self, text: str) -> Tuple[Dict[str, TimeComponent], List[TimeMatch]]:
        """
        Find every clock time and assign roles.

        Ranges are read first (12-hour ranges before 24-hour ones) and fill
        startTime/endTime. Single times inside a range are skipped. Single
        12-hour times claim their characters, so a 24-hour match starting
        inside one is discarded. A startTime with no scheduledTime also
        becomes the scheduledTime.

        Returns:
            (components keyed startTime/dueTime/scheduledTime/endTime,
             every TimeMatch in discovery order)
        """
        components: Dict[str, TimeComponent] = {}
        matches: List[TimeMatch] = []
        range_claimed: Set[int] = set()

        for pattern in (TIME_RANGE_12H_RE, TIME_RANGE_RE):
            for m in pattern.finditer(text):
                span = range(m.start(), m.end())
                if any(i in range_claimed for i in span):
                    continue
                parts = _RANGE_SPLIT_RE.split(m.group(0))
                if len(parts) != 2:
                    continue
                start, end = parse_time_component(parts[0]), parse_time_component(parts[1])
                if start is None or end is None:
                    continue

                start.is_range = end.is_range = True
                start.range_partner, end.range_partner = end, start
                range_claimed.update(span)
                matches.append(
                    TimeMatch(m.group(0), m.start(), is_range=True, range_start=start, range_end=end)
                )

                role = self.determine_time_context(text, m.group(0), m.start())
                if role == "start" or START_TIME not in components:
                    components[START_TIME] = start
                    components[END_TIME] = end

        single_claimed: Set[int] = set()
        for pattern in (TIME_12H_RE, TIME_24H_RE):
            for m in pattern.finditer(text):
                index, full = m.start(), m.group(0)
                if index in range_claimed or index in single_claimed:
                    continue
                component = parse_time_component(full)
                if component is None or _is_rejected(text, index, len(full)):
                    continue

                if pattern is TIME_12H_RE:
                    single_claimed.update(range(index, m.end()))
                matches.append(TimeMatch(full, index, time_component=component))

                role = self.determine_time_context(text, full, index)
                if role == "start":
                    components[START_TIME] = component
                elif role == "due":
                    components.setdefault(DUE_TIME, component)
                else:
                    components.setdefault(SCHEDULED_TIME, component)

        if START_TIME in components and SCHEDULED_TIME not in components:
            components[SCHEDULED_TIME] = components[START_TIME]

        return components, matches

    # ------------------------------------------------------------------
    # Role classification
    # ------------------------------------------------------------------

    def _context(self, text: str, expression: str, index: int) -> Tuple[str, str]:
        before = text[max(0, index - CONTEXT_BEFORE):index]
        end = index + len(expression)
        after = text[end:end + CONTEXT_AFTER]
        return before, f"{before} {after}".lower()

    def _emoji_role(self, before: str) -> Optional[TimeRole]:
        if START_EMOJI in before:
            return "start"
        if DUE_EMOJI in before:
            return "due"
        if SCHEDULED_EMOJI in before:
            return "scheduled"
        return None

    def _keyword_role(self, context: str, order: Sequence[TimeRole]) -> Optional[TimeRole]:
        keywords = self.config.date_keywords
        for role in order:
            for keyword in getattr(keywords, role):
                if keyword.lower() in context:
                    return role
        return None

    def determine_time_context(self, text: str, expression: str, index: int) -> TimeRole:
        """
        Role of a clock time: emoji, then keywords start > scheduled > due,
        then "at"/"@" means scheduled, else due.
        """
        before, context = self._context(text, expression, index)
        role = self._emoji_role(before) or self._keyword_role(context, ("start", "scheduled", "due"))
        if role:
            return role
        if "at" in context or "@" in context:
            return "scheduled"
        return "due"

    def determine_time_type(self, text: str, expression: str, index: int) -> TimeRole:
        """Role of a date expression: emoji, then keywords start > due > scheduled, else due."""
        before, context = self._context(text, expression, index)
        return (
            self._emoji_role(before)
            or self._keyword_role(context, ("start", "due", "scheduled"))
            or "due"
        )

    # ------------------------------------------------------------------
    # Date expressions
    # ------------------------------------------------------------------

    def _find_dates(self, text: str, reference: Optional[datetime]) -> List[DateMatch]:
        languages = self.config.supported_languages
        matches: List[DateMatch] = []

        if "en" in languages:
            try:
                matches = list(self.date_finder(text, reference))
            except Exception as e:
                log.warning("Date grammar failed on %r: %s", text, e)

        if not matches and "zh" in languages and contains_cjk(text):
            try:
                matches = list(self.fallback_finder(text, reference))
            except Exception as e:
                log.warning("Fallback date grammar failed on %r: %s", text, e)

        return matches

    @staticmethod
    def normalize_parsed_date(value: datetime, fragment: str, time_match: Optional[TimeMatch]) -> datetime:
        """
        Apply the paired clock time, else a "YYYY-MM-DD HH:MM" time inside
        the fragment, else midnight.
        """
        component = time_match.primary if time_match else None
        if component is not None:
            return value.replace(
                hour=component.hour,
                minute=component.minute,
                second=component.second or 0,
                microsecond=0,
            )
        m = _DATE_TIME_FRAGMENT_RE.search(fragment)
        if m:
            return value.replace(
                hour=int(m.group(2)),
                minute=int(m.group(3)),
                second=int(m.group(4)) if m.group(4) else 0,
                microsecond=0,
            )
        return start_of_day(value)

    def parse_time_expressions(self, text: Optional[str], reference: Optional[datetime] = None) -> ParsedTimeResult:
        """
        Find date expressions, pair them with clock times and clean the text.

        A clock time that no date expression claims becomes an expression of
        its own, dated on the reference day. With per_line_processing on,
        each line is scanned on its own: a date never pairs with a time on
        another line and role context stops at the line break.

        Args:
            text: Text to scan (None reads as "")
            reference: "Now" for relative expressions; defaults to the start
                of today

        Returns a fresh result on every call; cached results are copied.
        """
        text = text or ""
        if not self.config.enabled:
            return ParsedTimeResult(original_text=text, cleaned_text=text)

        if reference is None:
            reference = start_of_day(datetime.now())
        key = self._cache_key(text, reference)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return copy.deepcopy(cached)

        if self.config.per_line_processing and "\n" in text:
            result = self._parse_lines(text, reference)
        else:
            result = self._parse_text(text, reference)

        self._store(key, copy.deepcopy(result))
        return result

    def _parse_text(self, text: str, reference: datetime) -> ParsedTimeResult:
        components, time_matches = self.extract_time_components(text)
        result = ParsedTimeResult(original_text=text, cleaned_text=text, time_components=components)
        if not text.strip():
            return result

        bound: Set[int] = set()
        for match in self._find_dates(text, reference):
            time_match = self._time_match_near(time_matches, match.index, len(match.text))
            if time_match is not None:
                bound.add(id(time_match))
            normalized = self.normalize_parsed_date(match.date, match.text, time_match)
            self._add_expression(result, text, match.text, match.index, normalized, time_match)

        day = start_of_day(reference)
        for time_match in time_matches:
            if id(time_match) in bound:
                continue
            normalized = self.normalize_parsed_date(day, time_match.text, time_match)
            self._add_expression(result, text, time_match.text, time_match.index, normalized, time_match)

        result.parsed_expressions.sort(key=lambda e: e.index)
        result.cleaned_text = self.clean_text_from_time_expressions(text, result.parsed_expressions)
        return result

    def _parse_lines(self, text: str, reference: datetime) -> ParsedTimeResult:
        """Scan line by line; indices stay relative to the whole text and the first line to supply a role wins."""
        result = ParsedTimeResult(original_text=text, cleaned_text=text)
        cleaned: List[str] = []
        offset = 0
        for line in text.split("\n"):
            part = self._parse_text(line, reference)
            for expr in part.parsed_expressions:
                expr.index += offset
                result.parsed_expressions.append(expr)
            for role, component in part.time_components.items():
                result.time_components.setdefault(role, component)
            result.start_date = result.start_date or part.start_date
            result.due_date = result.due_date or part.due_date
            result.scheduled_date = result.scheduled_date or part.scheduled_date
            cleaned.append(part.cleaned_text)
            offset += len(line) + 1
        result.cleaned_text = "\n".join(cleaned)
        return result

    @staticmethod
    def _time_match_near(time_matches: List[TimeMatch], index: int, length: int) -> Optional[TimeMatch]:
        for tm in time_matches:
            if index - TIME_MATCH_SLACK <= tm.index <= index + length + TIME_MATCH_SLACK:
                return tm
        return None

    def _add_expression(
        self,
        result: ParsedTimeResult,
        text: str,
        expression_text: str,
        index: int,
        value: datetime,
        time_match: Optional[TimeMatch],
    ) -> None:
        role = self.determine_time_type(text, expression_text, index)
        crosses_midnight = None
        if time_match is not None and time_match.is_range:
            crosses_midnight = time_match.range_start.hour > time_match.range_end.hour or None

        result.parsed_expressions.append(
            TimeExpression(
                text=expression_text,
                date=value,
                type=role,
                index=index,
                length=len(expression_text),
                time_component=time_match.primary if time_match else None,
                is_time_range=bool(time_match and time_match.is_range),
                range_start=time_match.range_start if time_match else None,
                range_end=time_match.range_end if time_match else None,
                crosses_midnight=crosses_midnight,
            )
        )

        if role == "start" and result.start_date is None:
            result.start_date = value
        elif role == "due" and result.due_date is None:
            result.due_date = value
        elif role == "scheduled" and result.scheduled_date is None:
            result.scheduled_date = value

    def parse_time_expressions_for_line(self, line: str, reference: Optional[datetime] = None) -> LineParseResult:
        result = self.parse_time_expressions(line, reference)
        return LineParseResult(
            original_line=line,
            cleaned_line=result.cleaned_text,
            parsed_expressions=result.parsed_expressions,
            start_date=result.start_date,
            due_date=result.due_date,
            scheduled_date=result.scheduled_date,
        )

    def parse_time_expressions_per_line(
        self, lines: Sequence[str], reference: Optional[datetime] = None
    ) -> List[LineParseResult]:
        return [self.parse_time_expressions_for_line(line, reference) for line in lines]

    # ------------------------------------------------------------------
    # Text cleaning
    # ------------------------------------------------------------------

    def clean_text_from_time_expressions(self, text: str, expressions: Sequence[TimeExpression]) -> str:
        """
        Remove expressions from text, right to left.

        A comma or semicolon left dangling next to a removed expression is
        dropped ("a, tomorrow, b" -> "a, b"; "a tomorrow, b" -> "a b").
        Runs of spaces and tabs collapse; newlines are kept.
        """
        if not self.config.remove_original_text or not expressions:
            return text

        cleaned = text
        for expr in sorted(expressions, key=lambda e: e.index, reverse=True):
            before = cleaned[:expr.index]
            after = cleaned[expr.index + expr.length:]

            if before.endswith(" ") and after.startswith(" "):
                after = after.lstrip()
            elif before.endswith(" "):
                before = before.rstrip() + " "

            punct_before = _TRAILING_PUNCT_RE.search(before)
            punct_after = _LEADING_PUNCT_RE.match(after)

            if punct_before and punct_after:
                before = _TRAILING_PUNCT_RE.sub("", before)
                punctuation = after[0]
                after = _LEADING_PUNCT_RE.sub("", after, count=1)
                if after.strip():
                    before += punctuation + " "
            elif punct_before:
                before = _TRAILING_PUNCT_RE.sub("", before)
                if after.strip() and not before.endswith(" "):
                    before += " "
            elif punct_after:
                after = _LEADING_PUNCT_RE.sub("", after, count=1)
                if before and after.strip() and not before.endswith(" "):
                    before += " "
            elif before and after.strip() and not before.endswith(" "):
                before += " "

            cleaned = before + after

        cleaned = re.sub(r"[ \t]+", " ", cleaned)
        return re.sub(r"^[ \t]+|[ \t]+$", "", cleaned)
