"""
Markdown task parser.

Main API:
    MarkdownTaskParser(config).parse(text, file_path)         -> List[TaskRecord]
    MarkdownTaskParser(config).parse_legacy(text, file_path)  -> List[LegacyTask]
    MarkdownTaskParser(config).parse_task(line, file_path, n) -> Optional[LegacyTask]

One pass over the lines. Fenced code is skipped, headings update the
heading stamped on later tasks, and each task line goes through status
splitting, metadata extraction, file-level inheritance and (when a
TimeParsingService is attached) clock-time extraction. Parent/child links
come from the indent stack and are stored as ids.

Malformed input never raises: bad values are logged and left out.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from mdtasks.cache.date_cache import DateParseCache
from mdtasks.config import (
    TaskParserConfig,
    create_compact_parser_config,
    create_default_parser_config,
    create_parser_config_with_status_mapping,
)
from mdtasks.models.task import LegacyTask, TaskDocument, TaskRecord, TgProject
from mdtasks.parsers.datetime_combiner import combine_timestamps_with_time_components
from mdtasks.parsers.hierarchy import IndentStack
from mdtasks.parsers.inheritance import inherit_file_metadata, inherited_tags
from mdtasks.parsers.lines import (
    extract_heading,
    extract_task_line,
    is_completed,
    is_fence,
    is_task_line,
    split_status,
    status_from_mapping,
)
from mdtasks.parsers.metadata import DATE_FIELDS, ExtractedMetadata, MetadataExtractor
from mdtasks.parsers.project import determine_tg_project
from mdtasks.services.time_parsing import TimeParsingService
from mdtasks.utils.dates import coerce_to_datetime, to_epoch_ms
from mdtasks.utils.formatting import merge_tags, parse_priority, split_ids
from mdtasks.utils.ids import make_task_id

log = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r?\n")


# ---------------------------------------------------------------------------
# Line helpers
# ---------------------------------------------------------------------------

def extract_multiline_comment(lines: List[str], start: int, actual_spaces: int) -> Tuple[Optional[str], int]:
    """
    Collect the non-task lines under a task that are indented deeper than it.

    Returns:
        (comment joined with newlines or None, number of lines consumed)
    """
    comment_lines: List[str] = []
    for line in lines[start:]:
        trimmed = line.lstrip()
        if len(line) - len(trimmed) > actual_spaces and not is_task_line(trimmed):
            comment_lines.append(trimmed)
        else:
            break

    if not comment_lines:
        return None, 0
    return "\n".join(comment_lines), len(comment_lines)


class MarkdownTaskParser:
    """
    Parses markdown documents into TaskRecords.

    A parser holds its configuration, an optional TimeParsingService and a
    DateParseCache. Per-document state (indent stack, current heading) lives
    inside each parse() call, so one parser can be reused and shared.

    Usage:
        parser = MarkdownTaskParser(create_default_parser_config())
        tasks = parser.parse(text, "notes/todo.md")
    """

    def __init__(
        self,
        config: Optional[TaskParserConfig] = None,
        time_service: Optional[TimeParsingService] = None,
        date_cache: Optional[DateParseCache] = None,
    ) -> None:
        self.config = config or create_default_parser_config()
        self.time_service = time_service
        self.date_cache = date_cache if date_cache is not None else DateParseCache()
        self.extractor = MetadataExtractor(self.config)

    @classmethod
    def create_with_status_mapping(
        cls,
        status_mapping: Mapping[str, str],
        time_service: Optional[TimeParsingService] = None,
    ) -> "MarkdownTaskParser":
        return cls(create_parser_config_with_status_mapping(status_mapping), time_service)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract_metadata_and_tags(self, content: str) -> ExtractedMetadata:
        """Run the metadata/tag strip loop on a bare task body."""
        return self.extractor.extract(content)

    def parse(
        self,
        text: str,
        file_path: str = "",
        file_metadata: Optional[Mapping[str, Any]] = None,
        project_config_data: Optional[Mapping[str, Any]] = None,
        tg_project: Optional[TgProject] = None,
    ) -> List[TaskRecord]:
        """
        Parse a document into TaskRecords in source order.

        Args:
            text: Document text (frontmatter, if any, already removed)
            file_path: Opaque id used for task ids and path-based projects
            file_metadata: Parsed frontmatter
            project_config_data: Values from the project config file
            tg_project: Project to use when none resolves from the config

        Returns:
            Tasks with parent_id/children_ids links
        """
        config = self.config
        lines = _LINE_SPLIT_RE.split(text)
        stack = IndentStack(config.max_stack_operations, config.max_stack_size)
        tasks: List[TaskRecord] = []
        by_id: Dict[str, TaskRecord] = {}
        heading: Optional[str] = None
        heading_level: Optional[int] = None
        in_code_block = False

        resolved_project = (
            determine_tg_project(file_path, config.project_config, file_metadata, project_config_data)
            or tg_project
        )

        i = 0
        iterations = 0
        while i < len(lines):
            iterations += 1
            if iterations > config.max_parse_iterations:
                log.warning(
                    "Maximum parse iterations (%d) reached in %r, stopping",
                    config.max_parse_iterations,
                    file_path,
                )
                break

            line = lines[i]

            if is_fence(line):
                in_code_block = not in_code_block
                i += 1
                continue
            if in_code_block:
                i += 1
                continue

            if config.parse_headings:
                found = extract_heading(line)
                if found:
                    heading_level, heading = found
                    i += 1
                    continue

            task_line = extract_task_line(line)
            if task_line is None:
                i += 1
                continue

            task_id = make_task_id(file_path, i)
            parent_id, indent_level = stack.find_parent_and_level(task_line.actual_spaces)
            content, raw_status = split_status(task_line.body)
            extracted = self.extractor.extract(content)

            metadata = inherit_file_metadata(
                extracted.metadata,
                config,
                file_metadata,
                project_config_data,
                is_subtask=parent_id is not None,
                special_tag_resolver=self.extractor.special_tag_field,
            )
            tags = merge_tags(extracted.tags, inherited_tags(metadata))
            metadata.pop("tags", None)
            metadata = self._typed_metadata(metadata)

            time_components, enhanced_dates = self._time_components(content, metadata)

            comment = None
            if config.parse_comments and i + 1 < len(lines):
                comment, consumed = extract_multiline_comment(lines, i + 1, task_line.actual_spaces)
                i += consumed

            task = TaskRecord(
                id=task_id,
                content=extracted.content,
                raw_status=raw_status,
                completed=is_completed(raw_status),
                indent_level=indent_level,
                status=status_from_mapping(raw_status, config.status_mapping),
                parent_id=parent_id,
                metadata=metadata,
                tags=tags,
                comment=comment,
                line_number=i + 1,
                actual_indent=task_line.actual_spaces,
                heading=heading,
                heading_level=heading_level,
                list_marker=task_line.list_marker,
                file_path=file_path,
                original_markdown=line,
                tg_project=resolved_project,
                time_components=time_components,
                enhanced_dates=enhanced_dates,
                line=i,
                priority=metadata.get("priority"),
                start_date=metadata.get("startDate"),
                due_date=metadata.get("dueDate"),
                scheduled_date=metadata.get("scheduledDate"),
                completed_date=metadata.get("completedDate"),
                created_date=metadata.get("createdDate"),
                recurrence=metadata.get("recurrence"),
                project=metadata.get("project"),
                context=metadata.get("context"),
            )

            parent = by_id.get(parent_id) if parent_id else None
            if parent is not None:
                parent.children_ids.append(task_id)
                parent.children.append(task_id)

            stack.update(task_id, indent_level, task_line.actual_spaces)
            tasks.append(task)
            by_id[task_id] = task
            i += 1

        return tasks

    def parse_document(self, text: str, file_path: str = "", **kwargs) -> TaskDocument:
        """parse(), wrapped in a TaskDocument for id lookups."""
        return TaskDocument(file_path=file_path, tasks=self.parse(text, file_path, **kwargs))

    def parse_legacy(
        self,
        text: str,
        file_path: str = "",
        file_metadata: Optional[Mapping[str, Any]] = None,
        project_config_data: Optional[Mapping[str, Any]] = None,
        tg_project: Optional[TgProject] = None,
    ) -> List[LegacyTask]:
        tasks = self.parse(text, file_path, file_metadata, project_config_data, tg_project)
        return [self.convert_to_legacy(t) for t in tasks]

    def parse_task(self, line: str, file_path: str = "", line_number: int = 0) -> Optional[LegacyTask]:
        """
        Parse a single task line as if it sat at line_number.

        Returns None when the line is not a task.
        """
        tasks = self.parse(line, file_path)
        if not tasks:
            return None
        task = tasks[0]
        task.line = line_number
        task.id = make_task_id(file_path, line_number)
        return self.convert_to_legacy(task)

    @staticmethod
    def convert_to_legacy(task: TaskRecord) -> LegacyTask:
        """Flatten a TaskRecord into the backward-compatible LegacyTask shape."""
        meta = task.metadata
        depends_on = meta.get("dependsOn")
        return LegacyTask(
            id=task.id,
            content=task.content,
            file_path=task.file_path,
            line=task.line,
            completed=task.completed,
            status=task.raw_status or " ",
            original_markdown=task.original_markdown,
            children=list(task.children),
            metadata={
                "tags": list(task.tags),
                "priority": task.priority if task.priority is not None else meta.get("priority"),
                "startDate": task.start_date or meta.get("startDate"),
                "dueDate": task.due_date or meta.get("dueDate"),
                "scheduledDate": task.scheduled_date or meta.get("scheduledDate"),
                "completedDate": task.completed_date or meta.get("completedDate"),
                "createdDate": task.created_date or meta.get("createdDate"),
                "cancelledDate": meta.get("cancelledDate"),
                "recurrence": task.recurrence or meta.get("recurrence"),
                "project": task.project or meta.get("project"),
                "context": task.context or meta.get("context"),
                "area": meta.get("area"),
                "id": meta.get("id"),
                "dependsOn": list(depends_on) if depends_on else None,
                "onCompletion": meta.get("onCompletion"),
                "children": list(task.children),
                "heading": [task.heading] if task.heading else [],
                "parent": task.parent_id,
                "tgProject": task.tg_project,
            },
        )

    # ------------------------------------------------------------------
    # Date cache
    # ------------------------------------------------------------------

    def clear_date_cache(self) -> None:
        self.date_cache.clear()

    def date_cache_stats(self) -> dict:
        stats = self.date_cache.stats()
        log.debug("Date cache stats: %s", stats)
        return stats

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_date(self, value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, (datetime, date)):
            return to_epoch_ms(coerce_to_datetime(value))
        if isinstance(value, str):
            return self.date_cache.resolve(value, self.config.custom_date_formats)
        return None

    def _typed_metadata(self, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert extracted string values to their typed form.

        Dates become epoch milliseconds, priority an int, dependsOn a list of
        ids. Values that do not convert are dropped.
        """
        typed: Dict[str, Any] = {}
        for key, value in metadata.items():
            if key in DATE_FIELDS:
                resolved = self._resolve_date(value)
                if resolved is not None:
                    typed[key] = resolved
            elif key == "priority":
                priority = parse_priority(value)
                if priority is not None:
                    typed[key] = priority
                else:
                    log.warning("Dropping priority %r: not a level between 1 and 5", value)
            elif key == "dependsOn":
                ids = split_ids(value) if isinstance(value, str) else [str(v) for v in value or []]
                if ids:
                    typed[key] = ids
            else:
                typed[key] = value
        return typed

    def _time_components(self, content: str, metadata: Mapping[str, Any]):
        """Clock times in the raw task body, and the dates they combine with."""
        if self.time_service is None:
            return None, None

        result = self.time_service.parse_time_components(content)
        if result.warnings:
            log.warning("Time parsing warnings for %r: %s", content, result.warnings)
        if result.errors:
            log.warning(
                "Time parsing errors for %r: %s",
                content,
                [e.message for e in result.errors],
            )
        if not result.time_components:
            return None, None

        enhanced = combine_timestamps_with_time_components(
            {
                "startDate": metadata.get("startDate"),
                "dueDate": metadata.get("dueDate"),
                "scheduledDate": metadata.get("scheduledDate"),
                "completedDate": metadata.get("completedDate"),
            },
            result.time_components,
        )
        return result.time_components, enhanced


class ConfigurableTaskParser(MarkdownTaskParser):
    """
    MarkdownTaskParser on the compact defaults.

    Four statuses (TODO " ", IN_PROGRESS "/", DONE "x", CANCELLED "-"), the
    Tasks plugin emoji set and small safety limits. Any TaskParserConfig
    field can be overridden by name.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[str, Any]] = None,
        time_service: Optional[TimeParsingService] = None,
        date_cache: Optional[DateParseCache] = None,
    ) -> None:
        super().__init__(create_compact_parser_config(**dict(overrides or {})), time_service, date_cache)
