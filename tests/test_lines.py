"""
Tests for parsers/lines.py.

Covers:
- Task line recognition (list markers, indentation, blockquotes)
- Heading and code fence detection
- Status splitting and status mapping lookups
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from mdtasks.parsers.lines import (
    extract_heading,
    extract_list_marker,
    extract_task_line,
    is_completed,
    is_fence,
    is_task_line,
    split_status,
    status_from_mapping,
)


# ---------------------------------------------------------------------------
# Task lines
# ---------------------------------------------------------------------------

class TestExtractTaskLine:
    def test_top_level_task(self):
        found = extract_task_line("- [ ] Write report")
        assert found is not None
        assert found.actual_spaces == 0
        assert found.list_marker == "-"
        assert found.body == "- [ ] Write report"

    def test_indented_task_counts_spaces(self):
        found = extract_task_line("    - [x] Child")
        assert found.actual_spaces == 4

    def test_ordered_marker(self):
        found = extract_task_line("1. [/] Step one")
        assert found.list_marker == "1."

    @pytest.mark.parametrize("marker", ["*", "+"])
    def test_other_bullets(self, marker):
        assert extract_task_line(f"{marker} [ ] Item").list_marker == marker

    def test_blockquoted_task(self):
        assert extract_task_line("> - [ ] Quoted") is not None

    def test_empty_task_body(self):
        found = extract_task_line("- [ ] ")
        assert found is not None
        assert split_status(found.body) == ("", " ")

    @pytest.mark.parametrize(
        "line",
        ["plain text", "- [[Wiki link]]", "-[ ] no space", "- [] empty box", ""],
    )
    def test_non_tasks(self, line):
        assert extract_task_line(line) is None
        assert not is_task_line(line.lstrip())


class TestListMarker:
    def test_paren_ordered_marker(self):
        assert extract_list_marker("12) [ ] x") == "12)"

    def test_falls_back_to_first_character(self):
        assert extract_list_marker("> x") == ">"


# ---------------------------------------------------------------------------
# Headings and fences
# ---------------------------------------------------------------------------

class TestHeadings:
    def test_heading_level_and_text(self):
        assert extract_heading("## Work items") == (2, "Work items")

    def test_tag_is_not_a_heading(self):
        assert extract_heading("#tag at line start") is None

    def test_seven_hashes_is_not_a_heading(self):
        assert extract_heading("####### deep") is None

    def test_bare_hashes_is_not_a_heading(self):
        assert extract_heading("###") is None


class TestFences:
    @pytest.mark.parametrize("line", ["```", "```python", "  ~~~"])
    def test_fence_lines(self, line):
        assert is_fence(line)

    def test_inline_backticks_are_not_a_fence(self):
        assert not is_fence("text with ``` later")


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

class TestStatus:
    def test_split_status(self):
        assert split_status("- [x] Done it") == ("Done it", "x")

    def test_split_status_passes_through_non_tasks(self):
        assert split_status("free text") == ("free text", " ")

    def test_mapping_lookup(self):
        mapping = {"TODO": " ", "DONE": "x|X", "IN_PROGRESS": "/"}
        assert status_from_mapping("X", mapping) == "DONE"
        assert status_from_mapping("/", mapping) == "IN_PROGRESS"
        assert status_from_mapping(" ", mapping) == "TODO"

    def test_unmapped_status_is_none(self):
        assert status_from_mapping("?", {"DONE": "x"}) is None

    def test_only_x_is_completed(self):
        assert is_completed("x")
        assert is_completed("X")
        assert not is_completed("/")
        assert not is_completed("-")
