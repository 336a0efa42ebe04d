"""
Tests for tools/task_tools.py and tools/time_tools.py.

Exercises the MCP tool handler functions directly (bypasses transport).
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from mdtasks.config import FileMetadataInheritance, TaskParserConfig
from mdtasks.parsers.task_parser import MarkdownTaskParser
from mdtasks.services.time_parsing import TimeParsingService
from mdtasks.tools import register_task_tools, register_time_tools
from mdtasks.tools.task_tools import handle_parse_tasks

DOC = (
    "---\n"
    "area: work\n"
    "tags: [team]\n"
    "---\n"
    "# Today\n"
    "- [ ] Call client 📅 2025-08-15 14:30 #phone\n"
    "  - [x] Find number ⛔ n1 🆔 c2\n"
)


class _FakeMCP:
    """Minimal fake to capture tool registrations."""

    def __init__(self):
        self._tools = {}

    def tool(self, *args, **kwargs):
        """Decorator that records functions by name."""
        def decorator(fn):
            self._tools[fn.__name__] = fn
            return fn
        return decorator

    def get(self, name: str):
        return self._tools[name]


@pytest.fixture
def setup():
    config = TaskParserConfig(
        file_metadata_inheritance=FileMetadataInheritance(
            enabled=True, inherit_from_frontmatter_for_subtasks=True
        )
    )
    service = TimeParsingService()
    parser = MarkdownTaskParser(config, time_service=service)

    mcp = _FakeMCP()
    register_task_tools(mcp, parser)
    register_time_tools(mcp, service)

    return mcp, parser


# ---------------------------------------------------------------------------
# Task tools
# ---------------------------------------------------------------------------

class TestParseMarkdownTasks:
    def test_tasks_and_frontmatter(self, setup):
        mcp, parser = setup
        data = json.loads(mcp.get("parse_markdown_tasks")(text=DOC, file_path="today.md"))
        assert data["count"] == 2
        assert data["frontmatter"] == {"area": "work", "tags": ["team"]}

        parent, child = data["tasks"]
        assert parent["id"] == "today.md-L5"
        assert parent["heading"] == "Today"
        assert parent["tags"] == ["#phone", "#team"]
        assert parent["metadata"]["area"] == "work"
        assert parent["time_components"]["dueTime"]["hour"] == 14
        assert parent["time_components"]["dueTime"]["time"] == "14:30"
        assert parent["enhanced_dates"]["due_date_time"] == "2025-08-15T14:30:00"
        assert parent["children_ids"] == [child["id"]]
        assert child["parent_id"] == parent["id"]
        assert child["completed"] is True
        assert child["metadata"]["dependsOn"] == ["n1"]

    def test_explicit_file_metadata_wins(self, setup):
        mcp, parser = setup
        data = json.loads(
            mcp.get("parse_markdown_tasks")(text=DOC, file_metadata={"area": "home"})
        )
        assert data["tasks"][0]["metadata"]["area"] == "home"

    def test_no_time_fields_without_times(self, setup):
        mcp, parser = setup
        data = json.loads(mcp.get("parse_markdown_tasks")(text="- [ ] plain"))
        assert "time_components" not in data["tasks"][0]
        assert "enhanced_dates" not in data["tasks"][0]

    def test_handler_returns_dict(self, setup):
        _, parser = setup
        result = handle_parse_tasks(parser, text="- [ ] a\n- [ ] b")
        assert result["count"] == 2
        assert result["file_path"] == ""


class TestParseMarkdownTasksLegacy:
    def test_legacy_shape(self, setup):
        mcp, parser = setup
        data = json.loads(mcp.get("parse_markdown_tasks_legacy")(text=DOC, file_path="today.md"))
        parent, child = data["tasks"]
        assert parent["status"] == " "
        assert parent["children"] == [child["id"]]
        assert parent["metadata"]["heading"] == ["Today"]
        assert child["metadata"]["parent"] == parent["id"]
        assert child["metadata"]["id"] == "c2"


class TestDateCacheStatus:
    def test_status_and_clear(self, setup):
        mcp, parser = setup
        mcp.get("parse_markdown_tasks")(text=DOC)
        stats = json.loads(mcp.get("date_cache_status")())
        assert stats["size"] == 1

        cleared = json.loads(mcp.get("date_cache_status")(clear=True))
        assert cleared["size"] == 0


# ---------------------------------------------------------------------------
# Time tools
# ---------------------------------------------------------------------------

class TestTimeTools:
    def test_parse_time_components(self, setup):
        mcp, _ = setup
        data = json.loads(mcp.get("parse_time_components")(text="Meeting 14:00-15:30"))
        assert data["time_components"]["startTime"]["hour"] == 14
        assert data["time_components"]["endTime"]["minute"] == 30
        assert data["time_components"]["startTime"]["is_range"] is True
        assert data["errors"] == []

    def test_parse_time_expressions(self, setup):
        mcp, _ = setup
        data = json.loads(
            mcp.get("parse_time_expressions")(text="下周三开会", reference="2025-03-12T09:00:00")
        )
        assert data["due_date"] == "2025-03-19T00:00:00"
        assert data["cleaned_text"] == "开会"
        assert data["parsed_expressions"][0]["text"] == "下周三"

    def test_invalid_reference(self, setup):
        mcp, _ = setup
        data = json.loads(mcp.get("parse_time_expressions")(text="tomorrow", reference="not-a-date"))
        assert "error" in data
