"""
Tests for utils/dates.py.

Covers:
- parse_local_date formats, custom formats and rejects
- coerce_to_datetime inputs
- find_date_expressions over English free text
- Month arithmetic
"""

import sys
from datetime import date, datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from mdtasks.utils.dates import (
    add_months,
    coerce_to_datetime,
    contains_cjk,
    find_date_expressions,
    from_epoch_ms,
    parse_local_date,
    to_epoch_ms,
)

WEDNESDAY = datetime(2025, 3, 12, 10, 0)


# ---------------------------------------------------------------------------
# Metadata values
# ---------------------------------------------------------------------------

class TestParseLocalDate:
    def test_iso_date_is_local_midnight(self):
        assert parse_local_date("2025-08-15") == to_epoch_ms(datetime(2025, 8, 15))

    def test_date_with_time(self):
        ms = parse_local_date("2025-08-15 14:30")
        assert from_epoch_ms(ms) == datetime(2025, 8, 15, 14, 30)

    @pytest.mark.parametrize("value", ["2025/08/15", "15.08.2025", "2025年08月15日", "Aug 15, 2025"])
    def test_other_formats(self, value):
        assert parse_local_date(value) == to_epoch_ms(datetime(2025, 8, 15))

    def test_custom_format_first(self):
        assert parse_local_date("2025|08|15", ["%Y|%m|%d"]) == to_epoch_ms(datetime(2025, 8, 15))

    @pytest.mark.parametrize("value", ["", "{{date}}", "someday"])
    def test_rejects(self, value):
        assert parse_local_date(value) is None


class TestCoerceToDatetime:
    def test_inputs(self):
        moment = datetime(2025, 8, 25, 9, 0)
        assert coerce_to_datetime("2025-08-25 09:00") == moment
        assert coerce_to_datetime("2025-08-25") == datetime(2025, 8, 25)
        assert coerce_to_datetime(to_epoch_ms(moment)) == moment
        assert coerce_to_datetime(moment) is moment
        assert coerce_to_datetime(date(2025, 8, 25)) == datetime(2025, 8, 25)

    @pytest.mark.parametrize("value", [None, "", "nope", True])
    def test_unreadable(self, value):
        assert coerce_to_datetime(value) is None


# ---------------------------------------------------------------------------
# Free text
# ---------------------------------------------------------------------------

def _dates(text):
    return [(m.text, m.date) for m in find_date_expressions(text, WEDNESDAY)]


class TestFindDateExpressions:
    def test_day_word(self):
        assert _dates("Due tomorrow") == [("tomorrow", datetime(2025, 3, 13))]

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("friday", datetime(2025, 3, 14)),
            ("next friday", datetime(2025, 3, 21)),
            ("this monday", datetime(2025, 3, 10)),
            ("last tuesday", datetime(2025, 3, 4)),
            ("wednesday", datetime(2025, 3, 19)),
        ],
    )
    def test_weekdays(self, text, expected):
        assert _dates(text) == [(text, expected)]

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("in 3 days", datetime(2025, 3, 15)),
            ("2 weeks ago", datetime(2025, 2, 26)),
            ("next month", datetime(2025, 4, 12)),
        ],
    )
    def test_relative(self, text, expected):
        assert _dates(text) == [(text, expected)]

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("March 20", datetime(2025, 3, 20)),
            ("Mar 1", datetime(2026, 3, 1)),
            ("15 April 2026", datetime(2026, 4, 15)),
        ],
    )
    def test_month_names(self, text, expected):
        assert _dates(text) == [(text, expected)]

    def test_iso_with_time(self):
        assert _dates("ship 2025-08-15 14:00 sharp") == [
            ("2025-08-15 14:00", datetime(2025, 8, 15, 14, 0))
        ]

    def test_matches_in_text_order(self):
        texts = [t for t, _ in _dates("from monday until 2025-04-01")]
        assert texts == ["monday", "2025-04-01"]

    def test_invalid_calendar_date_is_skipped(self):
        assert _dates("2025-02-30") == []


class TestHelpers:
    def test_add_months_clamps(self):
        assert add_months(datetime(2025, 1, 31), 1) == datetime(2025, 2, 28)
        assert add_months(datetime(2025, 3, 15), -3) == datetime(2024, 12, 15)

    def test_contains_cjk(self):
        assert contains_cjk("明天 call")
        assert not contains_cjk("tomorrow")
