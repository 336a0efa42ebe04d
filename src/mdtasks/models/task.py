"""
Core task data models.

TaskRecord is the enhanced shape produced by MarkdownTaskParser. Parent and
child links are task ids, resolved through TaskDocument.find_by_id, so records
never hold references to each other. LegacyTask is the flatter
backward-compatible shape built from a TaskRecord.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from mdtasks.models.time import EnhancedDates, TimeComponent


@dataclass(frozen=True)
class TgProject:
    """A project assignment together with where it came from."""

    type: Literal["path", "metadata", "config"]
    name: str
    source: str
    readonly: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "source": self.source,
            "readonly": self.readonly,
        }


@dataclass
class TaskRecord:
    """
    A single task parsed from a markdown document.

    ``metadata`` holds every extracted field by its canonical name (dates as
    epoch milliseconds, priority as an int, dependsOn as a list of ids). The
    scalar fields below ``line`` mirror it for older consumers.
    """

    id: str
    content: str
    raw_status: str
    completed: bool
    indent_level: int = 0
    status: Optional[str] = None
    parent_id: Optional[str] = None
    children_ids: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    comment: Optional[str] = None
    line_number: int = 1
    actual_indent: int = 0
    heading: Optional[str] = None
    heading_level: Optional[int] = None
    list_marker: str = "-"
    file_path: str = ""
    original_markdown: str = ""
    tg_project: Optional[TgProject] = None
    time_components: Optional[Dict[str, TimeComponent]] = None
    enhanced_dates: Optional[EnhancedDates] = None

    # Legacy scalar fields
    line: int = 0
    children: List[str] = field(default_factory=list)
    priority: Optional[int] = None
    start_date: Optional[int] = None
    due_date: Optional[int] = None
    scheduled_date: Optional[int] = None
    completed_date: Optional[int] = None
    created_date: Optional[int] = None
    recurrence: Optional[str] = None
    project: Optional[str] = None
    context: Optional[str] = None

    @property
    def depends_on(self) -> List[str]:
        return list(self.metadata.get("dependsOn") or [])

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass
class LegacyTask:
    """Backward-compatible task shape: dates and links live in ``metadata``."""

    id: str
    content: str
    file_path: str
    line: int
    completed: bool
    status: str
    original_markdown: str
    children: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskDocument:
    """The tasks of one parsed document, in source order."""

    file_path: str
    tasks: List[TaskRecord] = field(default_factory=list)

    def find_by_id(self, task_id: str) -> Optional[TaskRecord]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def roots(self) -> List[TaskRecord]:
        return [t for t in self.tasks if t.parent_id is None]

    def children_of(self, task_id: str) -> List[TaskRecord]:
        parent = self.find_by_id(task_id)
        if parent is None:
            return []
        by_id = {t.id: t for t in self.tasks}
        return [by_id[cid] for cid in parent.children_ids if cid in by_id]

    def ancestors_of(self, task_id: str) -> List[TaskRecord]:
        """Parents from nearest to root."""
        by_id = {t.id: t for t in self.tasks}
        result: List[TaskRecord] = []
        current = by_id.get(task_id)
        while current is not None and current.parent_id is not None:
            current = by_id.get(current.parent_id)
            if current is None:
                break
            result.append(current)
        return result
