"""Markdown task parsing engine with clock-time extraction."""

from .cache import DateParseCache
from .config import (
    MetadataParseMode,
    TaskParserConfig,
    TimeParsingConfig,
    create_compact_parser_config,
    create_default_parser_config,
    create_parser_config_with_status_mapping,
    with_overrides,
)
from .errors import ConfigError, MdTasksError, TimeParsingFailure
from .models import LegacyTask, TaskRecord, TgProject, TimeComponent
from .parsers import ConfigurableTaskParser, MarkdownTaskParser, split_frontmatter
from .services import TimeParsingService

__version__ = "0.3.0"

__all__ = [
    "ConfigError",
    "ConfigurableTaskParser",
    "DateParseCache",
    "LegacyTask",
    "MarkdownTaskParser",
    "MdTasksError",
    "MetadataParseMode",
    "TaskParserConfig",
    "TaskRecord",
    "TgProject",
    "TimeComponent",
    "TimeParsingConfig",
    "TimeParsingFailure",
    "TimeParsingService",
    "create_compact_parser_config",
    "create_default_parser_config",
    "create_parser_config_with_status_mapping",
    "split_frontmatter",
    "with_overrides",
]
