"""
Task parsing tool handlers.

Core logic lives in handle_* functions (return dicts).
MCP wrappers in register_task_tools() serialize to JSON strings.
"""

import json
import logging
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from mdtasks.parsers.frontmatter import split_frontmatter
from mdtasks.parsers.task_parser import MarkdownTaskParser

log = logging.getLogger(__name__)


def time_component_to_dict(component) -> dict:
    return {
        "hour": component.hour,
        "minute": component.minute,
        "second": component.second,
        "time": component.format(),
        "original_text": component.original_text,
        "is_range": component.is_range,
    }


def iso_or_none(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def task_to_dict(task) -> dict:
    """Serialize a TaskRecord to a JSON-serializable dict."""
    d = {
        "id": task.id,
        "content": task.content,
        "status": task.status,
        "raw_status": task.raw_status,
        "completed": task.completed,
        "indent_level": task.indent_level,
        "parent_id": task.parent_id,
        "children_ids": list(task.children_ids),
        "metadata": dict(task.metadata),
        "tags": list(task.tags),
        "comment": task.comment,
        "line_number": task.line_number,
        "actual_indent": task.actual_indent,
        "heading": task.heading,
        "heading_level": task.heading_level,
        "list_marker": task.list_marker,
        "file_path": task.file_path,
        "original_markdown": task.original_markdown,
        "tg_project": task.tg_project.to_dict() if task.tg_project else None,
    }
    if task.time_components:
        d["time_components"] = {
            role: time_component_to_dict(c) for role, c in task.time_components.items()
        }
    if task.enhanced_dates:
        ed = task.enhanced_dates
        d["enhanced_dates"] = {
            "start_date_time": iso_or_none(ed.start_date_time),
            "due_date_time": iso_or_none(ed.due_date_time),
            "scheduled_date_time": iso_or_none(ed.scheduled_date_time),
            "end_date_time": iso_or_none(ed.end_date_time),
        }
    return d


def legacy_task_to_dict(task) -> dict:
    """Serialize a LegacyTask; tgProject is flattened to a dict."""
    metadata = dict(task.metadata)
    if metadata.get("tgProject") is not None:
        metadata["tgProject"] = metadata["tgProject"].to_dict()
    return {
        "id": task.id,
        "content": task.content,
        "file_path": task.file_path,
        "line": task.line,
        "completed": task.completed,
        "status": task.status,
        "original_markdown": task.original_markdown,
        "children": list(task.children),
        "metadata": metadata,
    }


def _document_inputs(
    text: str, file_metadata: Optional[Dict[str, Any]]
) -> tuple:
    """Frontmatter given explicitly wins; otherwise it is read from the text."""
    frontmatter, body = split_frontmatter(text, preserve_lines=True)
    return (file_metadata if file_metadata is not None else frontmatter), body


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_parse_tasks(
    parser: MarkdownTaskParser,
    *,
    text: str,
    file_path: str = "",
    file_metadata: Optional[Dict[str, Any]] = None,
    project_config_data: Optional[Dict[str, Any]] = None,
) -> dict:
    metadata, body = _document_inputs(text, file_metadata)
    tasks = parser.parse(body, file_path, metadata, project_config_data)
    log.debug("Parsed %d tasks from %r", len(tasks), file_path)
    return {
        "file_path": file_path,
        "frontmatter": metadata,
        "count": len(tasks),
        "tasks": [task_to_dict(t) for t in tasks],
    }


def handle_parse_tasks_legacy(
    parser: MarkdownTaskParser,
    *,
    text: str,
    file_path: str = "",
    file_metadata: Optional[Dict[str, Any]] = None,
    project_config_data: Optional[Dict[str, Any]] = None,
) -> dict:
    metadata, body = _document_inputs(text, file_metadata)
    tasks = parser.parse_legacy(body, file_path, metadata, project_config_data)
    return {
        "file_path": file_path,
        "count": len(tasks),
        "tasks": [legacy_task_to_dict(t) for t in tasks],
    }


def handle_date_cache_status(parser: MarkdownTaskParser, *, clear: bool = False) -> dict:
    if clear:
        parser.clear_date_cache()
    return parser.date_cache_stats()


# ---------------------------------------------------------------------------
# MCP registration
# ---------------------------------------------------------------------------


def register_task_tools(mcp: FastMCP, parser: MarkdownTaskParser) -> None:
    """Register the task parsing MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def parse_markdown_tasks(
        text: str,
        file_path: str = "",
        file_metadata: Optional[Dict[str, Any]] = None,
        project_config_data: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Parse markdown checklist items into structured tasks.

        YAML frontmatter at the top of text is read as file metadata unless
        file_metadata is given.

        Args:
            text: Markdown document
            file_path: Document path, used in task ids and project mappings
            file_metadata: Frontmatter mapping to use instead of the text's own
            project_config_data: Values from the project config file

        Returns:
            JSON object with the task list (ids, parent/child links, metadata,
            tags, time components)
        """
        return json.dumps(
            handle_parse_tasks(
                parser,
                text=text,
                file_path=file_path,
                file_metadata=file_metadata,
                project_config_data=project_config_data,
            ),
            indent=2,
            default=str,
        )

    @mcp.tool()
    def parse_markdown_tasks_legacy(
        text: str,
        file_path: str = "",
        file_metadata: Optional[Dict[str, Any]] = None,
        project_config_data: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Parse markdown tasks into the flat legacy shape (dates and links in metadata).

        Returns:
            JSON object with the legacy task list
        """
        return json.dumps(
            handle_parse_tasks_legacy(
                parser,
                text=text,
                file_path=file_path,
                file_metadata=file_metadata,
                project_config_data=project_config_data,
            ),
            indent=2,
            default=str,
        )

    @mcp.tool()
    def date_cache_status(clear: bool = False) -> str:
        """
        Return date cache statistics (size, max_size, hits, misses).

        Args:
            clear: Empty the cache before reporting
        """
        return json.dumps(handle_date_cache_status(parser, clear=clear), indent=2)
