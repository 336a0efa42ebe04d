"""
Tests for parsers/metadata.py.

Covers:
- Emoji fields (left-most marker wins, value terminators, defaults)
- Dataview fields and key canonicalisation
- Context markers and tags, escapes and protected spans
- Special-prefix tags routed into metadata
- The iteration guard
"""

import logging
import sys
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from mdtasks.config import MetadataParseMode, TaskParserConfig
from mdtasks.parsers.metadata import (
    MetadataExtractor,
    count_preceding_backslashes,
    find_file_extension_end,
    is_valid_token_start,
)


@pytest.fixture
def extractor():
    return MetadataExtractor(TaskParserConfig())


# ---------------------------------------------------------------------------
# Emoji fields
# ---------------------------------------------------------------------------

class TestEmoji:
    def test_due_date_and_tag(self, extractor):
        result = extractor.extract("Write report #urgent 📅 2025-08-15")
        assert result.content == "Write report"
        assert result.tags == ["#urgent"]
        assert result.metadata == {"dueDate": "2025-08-15"}

    def test_leftmost_marker_binds_first(self, extractor):
        # ⏳ comes after 📅 in the emoji table but before it in the text
        result = extractor.extract("Task ⏳ 2025-01-02 📅 2025-01-05")
        assert result.metadata["scheduledDate"] == "2025-01-02"
        assert result.metadata["dueDate"] == "2025-01-05"
        assert result.content == "Task"

    def test_value_stops_at_hash_after_space(self, extractor):
        result = extractor.extract("Plan 📅 2025-01-01 #work")
        assert result.metadata["dueDate"] == "2025-01-01"
        assert result.tags == ["#work"]

    def test_date_value_is_sanitised(self, extractor):
        result = extractor.extract("Plan 📅 2025-01-01 extra words")
        assert result.metadata["dueDate"] == "2025-01-01"

    def test_date_value_keeps_clock_time(self, extractor):
        result = extractor.extract("Call 📅 2025-08-15 14:30")
        assert result.metadata["dueDate"] == "2025-08-15 14:30"

    def test_bare_priority_marker(self, extractor):
        assert extractor.extract("Ship it ⏫").metadata["priority"] == "⏫"

    def test_bare_auxiliary_marker_defaults_to_true(self, extractor):
        assert extractor.extract("Idea 💡").metadata["idea"] == "true"

    def test_depends_on_is_normalised(self, extractor):
        result = extractor.extract("Blocked ⛔ abc, def 🆔 xyz")
        assert result.metadata["dependsOn"] == "abc,def"
        assert result.metadata["id"] == "xyz"

    def test_file_extension_keeps_heading_fragment(self, extractor):
        result = extractor.extract("Wrap up 🏁 notes.md#Summary rest")
        assert result.metadata["onCompletion"] == "notes.md#Summary"
        assert result.content == "Wrap up rest"

    def test_value_capped_at_max_length(self):
        extractor = MetadataExtractor(TaskParserConfig(max_emoji_value_length=5))
        result = extractor.extract("Go 📍 abcdefghij")
        assert result.metadata["location"] == "abcde"

    def test_text_before_marker_is_not_glued(self, extractor):
        result = extractor.extract("See [ref] later 🔼")
        assert result.content == "See [ref] later"
        assert result.metadata["priority"] == "🔼"

    def test_emoji_disabled_in_dataview_only_mode(self):
        config = TaskParserConfig(metadata_parse_mode=MetadataParseMode.DATAVIEW_ONLY)
        result = MetadataExtractor(config).extract("Task 📅 2025-01-01")
        assert result.metadata == {}
        assert "📅" in result.content


# ---------------------------------------------------------------------------
# Dataview fields
# ---------------------------------------------------------------------------

class TestDataview:
    def test_project_and_priority(self, extractor):
        result = extractor.extract("[project:: Apollo] [priority:: 2]")
        assert result.metadata == {"project": "Apollo", "priority": "2"}
        assert result.content == ""

    def test_key_mapping(self, extractor):
        result = extractor.extract("Pay rent [due:: 2025-08-15] [repeat:: every month]")
        assert result.metadata["dueDate"] == "2025-08-15"
        assert result.metadata["recurrence"] == "every month"
        assert result.content == "Pay rent"

    def test_key_mapping_is_case_insensitive(self, extractor):
        assert extractor.extract("[Due:: 2025-01-01]").metadata == {"dueDate": "2025-01-01"}

    def test_unknown_keys_are_kept(self, extractor):
        assert extractor.extract("[mood:: calm]").metadata == {"mood": "calm"}

    def test_wiki_link_before_field(self, extractor):
        result = extractor.extract("[[Note]] [due:: 2025-08-15]")
        assert result.metadata["dueDate"] == "2025-08-15"
        assert result.content == "[[Note]]"

    def test_escaped_field_is_literal(self, extractor):
        result = extractor.extract(r"Keep \[due:: 2025-08-15] literal")
        assert "dueDate" not in result.metadata


# ---------------------------------------------------------------------------
# Context markers and tags
# ---------------------------------------------------------------------------

class TestContext:
    def test_context_marker(self, extractor):
        result = extractor.extract("Call mom @home")
        assert result.metadata["context"] == "home"
        assert result.content == "Call mom"

    def test_email_is_not_a_context(self, extractor):
        result = extractor.extract("email me@example.com")
        assert "context" not in result.metadata
        assert result.content == "email me@example.com"

    def test_context_in_inline_code_is_ignored(self, extractor):
        result = extractor.extract("Run `@decorator` then @desk")
        assert result.metadata["context"] == "desk"

    def test_tags_before_context_are_kept(self, extractor):
        result = extractor.extract("Fix #bug @work")
        assert result.tags == ["#bug"]
        assert result.metadata["context"] == "work"
        assert result.content == "Fix"


class TestTags:
    def test_escaped_hash_is_literal(self, extractor):
        result = extractor.extract(r"Price \#5 item #real")
        assert result.tags == ["#real"]
        assert result.content == r"Price \#5 item"

    def test_double_backslash_does_not_escape(self, extractor):
        result = extractor.extract("a \\\\#tag")
        assert result.tags == ["#tag"]

    def test_triple_backslash_escapes(self, extractor):
        result = extractor.extract(r"a \\\#tag #real")
        assert result.tags == ["#real"]
        assert "#tag" in result.content

    def test_repeated_tag_kept_once(self, extractor):
        result = extractor.extract("#a x #a y")
        assert result.tags == ["#a"]
        assert result.content == "x y"

    def test_protected_spans(self, extractor):
        result = extractor.extract(
            "See [[Note#Heading]] and `#code` and https://x.com/#frag #real"
        )
        assert result.tags == ["#real"]

    def test_markdown_link_fragment_is_protected(self, extractor):
        result = extractor.extract("Read [docs](http://a.com/page#part)")
        assert result.tags == []

    def test_tag_inside_word_is_ignored(self, extractor):
        assert extractor.extract("issue#12 open").tags == []

    def test_cjk_punctuation_ends_tag(self, extractor):
        result = extractor.extract("学习 #中文标签，继续")
        assert result.tags == ["#中文标签"]

    def test_nested_tag_kept_as_tag(self, extractor):
        assert extractor.extract("Task #a/b").tags == ["#a/b"]

    def test_over_long_tag_is_skipped(self):
        extractor = MetadataExtractor(TaskParserConfig(max_tag_length=3))
        result = extractor.extract("x #toolong #ok")
        assert result.tags == ["#ok"]

    def test_tags_disabled(self):
        result = MetadataExtractor(TaskParserConfig(parse_tags=False)).extract("Task #a @b")
        assert result.tags == []
        assert result.content == "Task #a @b"


class TestSpecialTags:
    def test_project_tag_becomes_metadata(self, extractor):
        result = extractor.extract("Launch #project/Apollo")
        assert result.metadata == {"project": "Apollo"}
        assert result.tags == []

    def test_prefix_is_case_insensitive(self, extractor):
        assert extractor.special_tag_field("#Project/Apollo") == ("project", "Apollo")

    def test_chinese_prefix(self, extractor):
        assert extractor.special_tag_field("#项目/阿波罗") == ("project", "阿波罗")

    def test_plain_tag_is_not_special(self, extractor):
        assert extractor.special_tag_field("#urgent") is None

    def test_none_mode_disables_special_tags(self):
        config = TaskParserConfig(metadata_parse_mode=MetadataParseMode.NONE)
        assert MetadataExtractor(config).special_tag_field("#area/home") is None


# ---------------------------------------------------------------------------
# Guard and helpers
# ---------------------------------------------------------------------------

class TestGuard:
    def test_iteration_limit_keeps_remaining_text(self, caplog):
        config = replace(TaskParserConfig(), max_metadata_iterations=1)
        with caplog.at_level(logging.WARNING):
            result = MetadataExtractor(config).extract("A #a #b")
        assert result.tags == ["#a"]
        assert result.content == "A #b"
        assert "Maximum metadata iterations" in caplog.text


class TestHelpers:
    def test_count_preceding_backslashes(self):
        assert count_preceding_backslashes(r"a\\\#", 4) == 3
        assert count_preceding_backslashes("#", 0) == 0

    def test_valid_token_start(self):
        assert is_valid_token_start("#a", 0)
        assert is_valid_token_start("x (#a", 3)
        assert not is_valid_token_start("x#a", 1)

    def test_file_extension_end(self):
        assert find_file_extension_end("a.md rest", 1) == 4
        assert find_file_extension_end("a.mdx", 1) == 1
