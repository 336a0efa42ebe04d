"""
Task id helpers.
"""

import re
from typing import Optional, Tuple

_TASK_ID_RE = re.compile(r"^(.*)-L(\d+)$")


def make_task_id(file_path: str, line_index: int) -> str:
    """
    Build the id of the task found on a given line.

    Args:
        file_path: Opaque document identifier (may be empty)
        line_index: 0-based line index of the task line

    Returns:
        "<file_path>-L<line_index>", e.g. "notes/todo.md-L4"
    """
    return f"{file_path}-L{line_index}"


def split_task_id(task_id: str) -> Optional[Tuple[str, int]]:
    """Inverse of make_task_id, or None for ids not built by it."""
    m = _TASK_ID_RE.match(task_id)
    if not m:
        return None
    return m.group(1), int(m.group(2))
