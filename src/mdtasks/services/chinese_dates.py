"""
Fallback grammar for relative Chinese date expressions.

Used by TimeParsingService when the primary date grammar finds nothing in
text that contains CJK characters. Recognises:

- weekdays, optionally prefixed:   下周三  上礼拜五  这星期一  周日  星期天
- relative counts:                 3天后  2周后  1月内
- day words:                       明天  后天  昨天  前天
- week/month/year words:           下周  上个月  这月  明年  去年  今年

Patterns run most specific first. Characters consumed by one match are not
available to later patterns, so 下周三 is never also read as 下周.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import List, Optional, Set

from mdtasks.utils.dates import DateMatch, add_months, add_years, start_of_day

log = logging.getLogger(__name__)

_WEEK_WORD = r"(?:周|礼拜|星期)"
_DAY_CHAR = r"[一二三四五六日天]"

CHINESE_PATTERNS = (
    re.compile(rf"[下上这]{_WEEK_WORD}{_DAY_CHAR}"),
    re.compile(r"(\d+)[天周月]后"),
    re.compile(r"(\d+)[天周月]内"),
    re.compile(rf"星期{_DAY_CHAR}"),
    re.compile(rf"周{_DAY_CHAR}"),
    re.compile(rf"礼拜{_DAY_CHAR}"),
    re.compile(r"明天|后天|昨天|前天"),
    re.compile(r"下周|上周|这周"),
    re.compile(r"下个?月|上个?月|这个?月"),
    re.compile(r"明年|去年|今年"),
)

# 0 = Sunday ... 6 = Saturday
WEEKDAY_NUMBERS = {"日": 0, "天": 0, "一": 1, "二": 2, "三": 3, "四": 4, "五": 5, "六": 6}

WEEK_OFFSETS = {"下": 1, "上": -1, "这": 0}

_WEEKDAY_EXPR_RE = re.compile(rf"^([下上这])?{_WEEK_WORD}({_DAY_CHAR})$")
_RELATIVE_EXPR_RE = re.compile(r"^(\d+)([天周月])[后内]$")

_DAY_WORDS = {"明天": 1, "后天": 2, "昨天": -1, "前天": -2}
_WEEK_WORDS = {"下周": 7, "上周": -7, "这周": 0}
_MONTH_WORDS = {"下个月": 1, "下月": 1, "上个月": -1, "上月": -1, "这个月": 0, "这月": 0}
_YEAR_WORDS = {"明年": 1, "去年": -1, "今年": 0}


def _sunday_based_weekday(value: datetime) -> int:
    return (value.weekday() + 1) % 7


def date_for_weekday(today: datetime, target_weekday: int, week_offset: int = 0) -> datetime:
    """
    Resolve a Sunday-based weekday number relative to today.

    With a zero offset a weekday that is today or already past this week
    moves to next week.
    """
    days = target_weekday - _sunday_based_weekday(today) + week_offset * 7
    if week_offset == 0 and days <= 0:
        days += 7
    return today + timedelta(days=days)


def parse_chinese_date(expression: str, reference: Optional[datetime] = None) -> Optional[datetime]:
    """
    Resolve one matched expression to a date at midnight.

    Returns None for text outside the grammar.
    """
    today = start_of_day(reference or datetime.now())

    m = _WEEKDAY_EXPR_RE.match(expression)
    if m:
        prefix, day_char = m.group(1), m.group(2)
        return date_for_weekday(today, WEEKDAY_NUMBERS[day_char], WEEK_OFFSETS.get(prefix, 0))

    if expression in _DAY_WORDS:
        return today + timedelta(days=_DAY_WORDS[expression])
    if expression in _WEEK_WORDS:
        return today + timedelta(days=_WEEK_WORDS[expression])
    if expression in _MONTH_WORDS:
        return add_months(today, _MONTH_WORDS[expression])
    if expression in _YEAR_WORDS:
        return add_years(today, _YEAR_WORDS[expression])

    m = _RELATIVE_EXPR_RE.match(expression)
    if m:
        amount, unit = int(m.group(1)), m.group(2)
        if unit == "天":
            return today + timedelta(days=amount)
        if unit == "周":
            return today + timedelta(weeks=amount)
        return add_months(today, amount)

    return None


def find_chinese_date_expressions(text: str, reference: Optional[datetime] = None) -> List[DateMatch]:
    """
    Scan text with the fallback grammar.

    Returns:
        DateMatch tuples in the order their patterns matched
    """
    used: Set[int] = set()
    results: List[DateMatch] = []

    for pattern in CHINESE_PATTERNS:
        for m in pattern.finditer(text):
            span = range(m.start(), m.end())
            if any(i in used for i in span):
                continue
            try:
                resolved = parse_chinese_date(m.group(0), reference)
            except (OverflowError, ValueError) as e:
                log.warning("Could not resolve %r: %s", m.group(0), e)
                continue
            if resolved is None:
                continue
            used.update(span)
            results.append(DateMatch(m.group(0), m.start(), resolved))

    return results
