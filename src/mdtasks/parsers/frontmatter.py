"""
YAML frontmatter splitting.
"""

import logging
from typing import Any, Dict, List, Tuple

import yaml

log = logging.getLogger(__name__)


def _frontmatter_bounds(lines: List[str]) -> Tuple[int, int]:
    """
    Locate the frontmatter block.

    Returns:
        (first content line, body start) or (0, 0) when the document has no
        closed ``---`` block at its top.
    """
    i = 0
    while i < len(lines) and not lines[i].strip():
        i += 1

    if i >= len(lines) or lines[i].strip() != "---":
        return 0, 0

    start = i + 1
    for j in range(start, len(lines)):
        if lines[j].strip() == "---":
            return start, j + 1

    # Never closed - treat as no frontmatter
    return 0, 0


def split_frontmatter(text: str, preserve_lines: bool = False) -> Tuple[Dict[str, Any], str]:
    """
    Split a markdown document into (frontmatter mapping, body).

    With preserve_lines the frontmatter lines are blanked instead of removed,
    so line indices in the body match the original document.

    Invalid YAML, or YAML that is not a mapping, is logged and read as an
    empty mapping; the body is still split off.
    """
    lines = text.splitlines()
    start, body_start = _frontmatter_bounds(lines)
    if body_start == 0:
        return {}, text

    raw = "\n".join(lines[start:body_start - 1])
    body_lines = lines[body_start:]
    if preserve_lines:
        body_lines = [""] * body_start + body_lines
    body = "\n".join(body_lines)

    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        log.warning("Invalid frontmatter YAML: %s", e)
        return {}, body

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        log.warning("Frontmatter is a %s, expected a mapping", type(data).__name__)
        return {}, body
    return data, body
