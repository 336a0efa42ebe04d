"""
Line-level recognisers: code fences, headings, task lines and checkbox status.

Each function looks at one line and either returns the pieces it found or
None. None of them keep state; the code-fence flag is owned by the caller.
"""

import re
from typing import Mapping, NamedTuple, Optional, Tuple

# Optional blockquote/indent prefix, list marker, then a one-character status
# in brackets. Groups: (1) full prefix, (2) leading whitespace/quotes,
# (3) list marker, (4) status character, (5) body.
TASK_RE = re.compile(r"^(([\s>]*)?(-|\d+\.|\*|\+)\s\[(.)\])\s*(.*)$")

_FENCES = ("```", "~~~")
_ORDERED_MARKER_RE = re.compile(r"^(\d+[.)])")


class TaskLine(NamedTuple):
    """A line recognised as a task."""

    actual_spaces: int
    body: str
    list_marker: str


def is_fence(line: str) -> bool:
    """True if the line opens or closes a fenced code block."""
    return line.strip().startswith(_FENCES)


def extract_heading(line: str) -> Optional[Tuple[int, str]]:
    """
    Return (level, text) for an ATX heading, or None.

    The run of ``#`` must be 1-6 long, followed by whitespace and non-empty
    text. ``#tag`` at the start of a line is not a heading.
    """
    stripped = line.strip()
    if not stripped.startswith("#"):
        return None

    level = 0
    for ch in stripped:
        if ch == "#":
            level += 1
        elif ch.isspace():
            break
        else:
            return None

    if 0 < level <= 6:
        text = stripped[level:].strip()
        if text:
            return level, text
    return None


def is_task_line(trimmed: str) -> bool:
    return TASK_RE.match(trimmed) is not None


def extract_list_marker(trimmed: str) -> str:
    """
    Return the list marker that opens a task line.

    "-", "*", "+" or an ordered marker such as "1." / "12)". Falls back to the
    first character.
    """
    if trimmed[:1] in ("-", "*", "+"):
        return trimmed[0]
    m = _ORDERED_MARKER_RE.match(trimmed)
    if m:
        return m.group(1)
    return trimmed[:1] or " "


def extract_task_line(line: str) -> Optional[TaskLine]:
    """
    Recognise a task line.

    Trailing whitespace is kept so "- [ ] " still counts as an (empty) task.

    Returns:
        TaskLine(actual_spaces, body, list_marker), where body is the line
        from its list marker onward, or None if the line is not a task.
    """
    trimmed = line.lstrip()
    actual_spaces = len(line) - len(trimmed)
    if not is_task_line(trimmed):
        return None
    return TaskLine(actual_spaces, trimmed, extract_list_marker(trimmed))


def split_status(body: str) -> Tuple[str, str]:
    """
    Split a task body into (content, raw status character).

    A body that does not match the task grammar is returned whole with a
    blank status.
    """
    m = TASK_RE.match(body)
    if m and m.group(4) is not None and m.group(5) is not None:
        return m.group(5).strip(), m.group(4)
    return body, " "


def status_from_mapping(raw_status: str, status_mapping: Mapping[str, str]) -> Optional[str]:
    """
    Look up the logical status name for a checkbox character.

    status_mapping maps names to characters; a value may list several
    characters separated by "|" (e.g. "x|X"). The first name whose characters
    include raw_status wins. Unmapped characters yield None.
    """
    for name, chars in status_mapping.items():
        candidates = chars.split("|") if len(chars) > 1 else [chars]
        if raw_status in candidates:
            return name
    return None


def is_completed(raw_status: str) -> bool:
    """Only "x"/"X" marks a task complete, whatever the status mapping says."""
    return raw_status.lower() == "x"
