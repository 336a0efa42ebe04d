"""
Parent/child reconstruction from indentation.

IndentStack holds the open ancestors of the line being parsed, shallowest at
the bottom. A line with equal indentation is always a sibling of the entry at
that depth, never its child.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

log = logging.getLogger(__name__)


@dataclass
class IndentStackEntry:
    task_id: str
    indent_level: int
    actual_spaces: int


class IndentStack:
    """
    Monotonic stack of open tasks.

    Usage:
        stack = IndentStack()
        parent_id, level = stack.find_parent_and_level(spaces)
        stack.update(task_id, level, spaces)
    """

    def __init__(self, max_stack_operations: int = 4000, max_stack_size: int = 1000) -> None:
        self.max_stack_operations = max_stack_operations
        self.max_stack_size = max_stack_size
        self._entries: List[IndentStackEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[IndentStackEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def find_parent_and_level(self, actual_spaces: int) -> Tuple[Optional[str], int]:
        """
        Return (parent task id, logical indent level) for a line.

        The parent is the nearest open entry strictly shallower than the
        line. Zero indentation, or no shallower entry, means a root task.
        """
        if actual_spaces == 0 or not self._entries:
            return None, 0

        for entry in reversed(self._entries):
            if entry.actual_spaces < actual_spaces:
                return entry.task_id, entry.indent_level + 1
        return None, 0

    def update(self, task_id: str, indent_level: int, actual_spaces: int) -> None:
        """
        Close every entry at least as deep as the new line, then push it.

        Runaway popping past max_stack_operations clears the stack with a
        warning. Past max_stack_size the oldest entries are dropped.
        """
        operations = 0
        while self._entries and self._entries[-1].actual_spaces >= actual_spaces:
            operations += 1
            if operations > self.max_stack_operations:
                log.warning(
                    "Maximum stack operations (%d) reached, clearing indent stack",
                    self.max_stack_operations,
                )
                self._entries.clear()
                break
            self._entries.pop()

        self._entries.append(IndentStackEntry(task_id, indent_level, actual_spaces))

        overflow = len(self._entries) - self.max_stack_size
        if overflow > 0:
            log.warning("Indent stack exceeded %d entries, dropping the oldest", self.max_stack_size)
            del self._entries[:overflow]
