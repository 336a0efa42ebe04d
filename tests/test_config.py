"""
Tests for config.py.
"""

import dataclasses
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from mdtasks.config import (
    DEFAULT_EMOJI_MAPPING,
    DateKeywords,
    MetadataParseMode,
    TaskParserConfig,
    TimeParsingConfig,
    create_compact_parser_config,
    create_default_parser_config,
    create_parser_config_with_status_mapping,
    with_overrides,
)
from mdtasks.errors import ConfigError


class TestTaskParserConfig:
    def test_defaults(self):
        config = create_default_parser_config()
        assert config.metadata_parse_mode is MetadataParseMode.BOTH
        assert config.emoji_mapping == DEFAULT_EMOJI_MAPPING
        assert config.status_mapping == {}
        assert config.file_metadata_inheritance is None

    def test_mode_from_string(self):
        config = TaskParserConfig(metadata_parse_mode="emoji-only")
        assert config.metadata_parse_mode is MetadataParseMode.EMOJI_ONLY
        assert config.metadata_parse_mode.parses_emoji
        assert not config.metadata_parse_mode.parses_dataview

    def test_unknown_mode(self):
        with pytest.raises(ConfigError):
            TaskParserConfig(metadata_parse_mode="sometimes")

    @pytest.mark.parametrize(
        "field", ["max_parse_iterations", "max_metadata_iterations", "max_stack_operations", "max_stack_size"]
    )
    def test_limits_must_be_positive(self, field):
        with pytest.raises(ConfigError):
            TaskParserConfig(**{field: 0})

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            TaskParserConfig(max_stack_size=-1)

    def test_frozen(self):
        config = create_default_parser_config()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.parse_tags = False

    def test_with_overrides_copies(self):
        base = create_default_parser_config()
        changed = with_overrides(base, parse_tags=False)
        assert changed.parse_tags is False
        assert base.parse_tags is True

    def test_status_mapping_builder(self):
        config = create_parser_config_with_status_mapping({"DONE": "x"})
        assert config.status_mapping == {"DONE": "x"}


class TestCompactConfig:
    def test_compact_defaults(self):
        config = create_compact_parser_config()
        assert config.max_parse_iterations == 100
        assert config.status_mapping["IN_PROGRESS"] == "/"
        assert config.special_tag_prefixes == {"project": "project", "@": "context"}

    def test_overrides(self):
        assert create_compact_parser_config(max_tag_length=10).max_tag_length == 10


class TestTimeParsingConfig:
    def test_signature_tracks_keywords(self):
        base = TimeParsingConfig()
        custom = TimeParsingConfig(date_keywords=DateKeywords(due=("deadline",)))
        assert base.signature() != custom.signature()
        assert base.signature() == TimeParsingConfig().signature()

    def test_signature_tracks_per_line_processing(self):
        assert TimeParsingConfig().signature() != TimeParsingConfig(per_line_processing=False).signature()
