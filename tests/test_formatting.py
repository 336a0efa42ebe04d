"""
Tests for utils/formatting.py and utils/ids.py.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from mdtasks.utils.formatting import (
    merge_tags,
    normalize_priority_value,
    normalize_tag,
    parse_priority,
    split_ids,
)
from mdtasks.utils.ids import make_task_id, split_task_id


class TestTags:
    @pytest.mark.parametrize(
        "raw, expected",
        [("work", "#work"), ("#work", "#work"), ("  spaced ", "#spaced"), ("", ""), ("   ", "")],
    )
    def test_normalize_tag(self, raw, expected):
        assert normalize_tag(raw) == expected

    def test_normalize_tag_is_idempotent(self):
        for raw in ("a", "#b", " c "):
            once = normalize_tag(raw)
            assert normalize_tag(once) == once

    def test_merge_keeps_order_and_drops_duplicates(self):
        assert merge_tags(["#a", "b"], ["a", "#c", "c"]) == ["#a", "#b", "#c"]

    def test_merge_drops_repeats_in_base(self):
        assert merge_tags(["#a", "a", "#b"]) == ["#a", "#b"]


class TestPriority:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2", 2),
            ("3 stars", 3),
            ("high", 4),
            ("HIGHEST", 5),
            ("urgent", 5),
            ("🔺", 5),
            ("⏬️", 1),
            (3, 3),
            (2.7, 2),
            ("42", None),
            ("0", None),
            (-3, None),
            (6, None),
            ("5", 5),
            (None, None),
            (True, None),
            ("weird", None),
            ("", None),
        ],
    )
    def test_parse_priority(self, value, expected):
        assert parse_priority(value) == expected

    def test_normalize_priority_value(self):
        assert normalize_priority_value("urgent") == "5"
        assert normalize_priority_value(2) == "2"
        assert normalize_priority_value("42") == "42"
        assert normalize_priority_value("odd") == "odd"


class TestIds:
    def test_split_ids(self):
        assert split_ids("a, b,,c ") == ["a", "b", "c"]

    def test_task_id_round_trip(self):
        task_id = make_task_id("notes/todo-L2.md", 4)
        assert task_id == "notes/todo-L2.md-L4"
        assert split_task_id(task_id) == ("notes/todo-L2.md", 4)

    def test_foreign_id(self):
        assert split_task_id("abc") is None
