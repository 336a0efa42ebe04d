"""
Parser and time-parsing configuration.

Configuration objects are frozen dataclasses built once per parser. Derived
configurations are produced with the builder functions at the bottom of this
module (all of them go through dataclasses.replace), so a config handed to a
parser is never changed underneath it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Literal, Mapping, Optional, Tuple

from mdtasks.errors import ConfigError


class MetadataParseMode(str, Enum):
    """Which inline metadata formats the extractor recognises."""

    DATAVIEW_ONLY = "dataview-only"
    EMOJI_ONLY = "emoji-only"
    BOTH = "both"
    NONE = "none"

    @property
    def parses_dataview(self) -> bool:
        return self in (MetadataParseMode.DATAVIEW_ONLY, MetadataParseMode.BOTH)

    @property
    def parses_emoji(self) -> bool:
        return self in (MetadataParseMode.EMOJI_ONLY, MetadataParseMode.BOTH)


# Emoji marker -> metadata field. Order matters only for ties at the same
# position (the variant-selector forms are listed before their bare forms).
DEFAULT_EMOJI_MAPPING: Dict[str, str] = {
    # Dates
    "📅": "dueDate",
    "🗓️": "dueDate",
    "⏰": "scheduledDate",
    "⏳": "scheduledDate",
    "🛫": "startDate",
    "✅": "completedDate",
    "➕": "createdDate",
    "❌": "cancelledDate",
    # Task management
    "🆔": "id",
    "⛔": "dependsOn",
    "🏁": "onCompletion",
    # Priority (Tasks plugin style)
    "🔺": "priority",
    "⏫": "priority",
    "🔼": "priority",
    "🔽": "priority",
    "⏬️": "priority",
    "⏬": "priority",
    "📌": "priority",
    # Auxiliary markers
    "🔔": "reminder",
    "⭐": "starred",
    "❗": "important",
    "💡": "idea",
    "📍": "location",
    "🔁": "recurrence",
    "⚡": "energy",
    "🎯": "goal",
    "💰": "cost",
    "⏱️": "duration",
    "👤": "assignee",
    "🏷️": "label",
}

# Tag prefix (before the first "/") -> metadata field
DEFAULT_SPECIAL_TAG_PREFIXES: Dict[str, str] = {
    "project": "project",
    "area": "area",
    "context": "context",
    "tag": "tag",
    # Chinese
    "项目": "project",
    "区域": "area",
    "上下文": "context",
    "标签": "tag",
    # French, Spanish, Italian
    "projet": "project",
    "proyecto": "project",
    "progetto": "project",
}


@dataclass(frozen=True)
class FileMetadataInheritance:
    enabled: bool = False
    inherit_from_frontmatter: bool = True
    inherit_from_frontmatter_for_subtasks: bool = False


@dataclass(frozen=True)
class PathMapping:
    path_pattern: str
    project_name: str
    enabled: bool = True


@dataclass(frozen=True)
class MetadataConfig:
    metadata_key: str = "project"
    enabled: bool = False


@dataclass(frozen=True)
class ConfigFileConfig:
    file_name: str = "project.md"
    search_recursively: bool = False
    enabled: bool = False


@dataclass(frozen=True)
class MetadataMapping:
    source_key: str
    target_key: str
    enabled: bool = True


@dataclass(frozen=True)
class DefaultProjectNaming:
    strategy: Literal["filename", "foldername", "metadata"] = "filename"
    metadata_key: Optional[str] = None
    strip_extension: bool = True
    enabled: bool = False


@dataclass(frozen=True)
class ProjectConfig:
    enable_enhanced_project: bool = False
    path_mappings: Tuple[PathMapping, ...] = ()
    metadata_config: MetadataConfig = field(default_factory=MetadataConfig)
    config_file: ConfigFileConfig = field(default_factory=ConfigFileConfig)
    metadata_mappings: Tuple[MetadataMapping, ...] = ()
    default_project_naming: DefaultProjectNaming = field(default_factory=DefaultProjectNaming)


@dataclass(frozen=True)
class TaskParserConfig:
    """
    Settings for MarkdownTaskParser.

    status_mapping maps a logical status name to its checkbox character,
    e.g. {"IN_PROGRESS": "/"}.
    """

    parse_metadata: bool = True
    parse_tags: bool = True
    parse_comments: bool = True
    parse_headings: bool = True
    max_parse_iterations: int = 100000
    max_metadata_iterations: int = 10000
    max_tag_length: int = 100
    max_emoji_value_length: int = 200
    max_stack_operations: int = 4000
    max_stack_size: int = 1000
    status_mapping: Mapping[str, str] = field(default_factory=dict)
    emoji_mapping: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_EMOJI_MAPPING))
    metadata_parse_mode: MetadataParseMode = MetadataParseMode.BOTH
    special_tag_prefixes: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_SPECIAL_TAG_PREFIXES)
    )
    custom_date_formats: Tuple[str, ...] = ()
    file_metadata_inheritance: Optional[FileMetadataInheritance] = None
    project_config: Optional[ProjectConfig] = None

    def __post_init__(self) -> None:
        for name in (
            "max_parse_iterations",
            "max_metadata_iterations",
            "max_stack_operations",
            "max_stack_size",
        ):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1, got {getattr(self, name)}")
        if not isinstance(self.metadata_parse_mode, MetadataParseMode):
            try:
                object.__setattr__(
                    self, "metadata_parse_mode", MetadataParseMode(self.metadata_parse_mode)
                )
            except ValueError as e:
                raise ConfigError(f"Unknown metadata parse mode: {self.metadata_parse_mode!r}") from e


DEFAULT_START_KEYWORDS = (
    "start", "begin", "from", "starting", "begins",
    "开始", "从", "起始", "起", "始于", "自",
)
DEFAULT_DUE_KEYWORDS = (
    "due", "deadline", "by", "until", "before", "expires", "ends",
    "截止", "到期", "之前", "期限", "最晚", "结束", "终止", "完成于",
)
DEFAULT_SCHEDULED_KEYWORDS = (
    "scheduled", "on", "at", "planned", "set for", "arranged",
    "安排", "计划", "在", "定于", "预定", "约定", "设定",
)


@dataclass(frozen=True)
class DateKeywords:
    start: Tuple[str, ...] = DEFAULT_START_KEYWORDS
    due: Tuple[str, ...] = DEFAULT_DUE_KEYWORDS
    scheduled: Tuple[str, ...] = DEFAULT_SCHEDULED_KEYWORDS


@dataclass(frozen=True)
class TimeParsingConfig:
    """Settings for TimeParsingService."""

    enabled: bool = True
    supported_languages: Tuple[str, ...] = ("en", "zh")
    date_keywords: DateKeywords = field(default_factory=DateKeywords)
    remove_original_text: bool = True
    per_line_processing: bool = True

    def signature(self) -> str:
        """Stable string used to key caches on this configuration."""
        kw = self.date_keywords
        return "|".join(
            [
                str(self.enabled),
                str(self.remove_original_text),
                str(self.per_line_processing),
                ",".join(self.supported_languages),
                ",".join(kw.start),
                ",".join(kw.due),
                ",".join(kw.scheduled),
            ]
        )


DEFAULT_TIME_PARSING_CONFIG = TimeParsingConfig()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def create_default_parser_config() -> TaskParserConfig:
    """Full-featured defaults: all emoji markers, multilingual tag prefixes."""
    return TaskParserConfig()


def create_parser_config_with_status_mapping(status_mapping: Mapping[str, str]) -> TaskParserConfig:
    return replace(create_default_parser_config(), status_mapping=dict(status_mapping))


def with_overrides(config: TaskParserConfig, **changes) -> TaskParserConfig:
    """Return a copy of config with the given fields replaced."""
    return replace(config, **changes)


# Compact defaults used by ConfigurableTaskParser
COMPACT_STATUS_MAPPING: Dict[str, str] = {
    "TODO": " ",
    "IN_PROGRESS": "/",
    "DONE": "x",
    "CANCELLED": "-",
}

COMPACT_EMOJI_MAPPING: Dict[str, str] = {
    "📅": "dueDate",
    "🛫": "startDate",
    "⏳": "scheduledDate",
    "✅": "completedDate",
    "➕": "createdDate",
    "❌": "cancelledDate",
    "🆔": "id",
    "⛔": "dependsOn",
    "🏁": "onCompletion",
    "🔁": "repeat",
    "🔺": "priority",
    "⏫": "priority",
    "🔼": "priority",
    "🔽": "priority",
    "⏬": "priority",
}


def create_compact_parser_config(**overrides) -> TaskParserConfig:
    base = TaskParserConfig(
        max_parse_iterations=100,
        max_metadata_iterations=50,
        max_tag_length=50,
        max_emoji_value_length=50,
        max_stack_operations=1000,
        max_stack_size=50,
        status_mapping=dict(COMPACT_STATUS_MAPPING),
        emoji_mapping=dict(COMPACT_EMOJI_MAPPING),
        special_tag_prefixes={"project": "project", "@": "context"},
    )
    return replace(base, **overrides) if overrides else base
