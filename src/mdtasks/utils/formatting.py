"""
Canonical tag and priority normalisation.

This module is the single source of truth for how tag strings and priority
values are normalised, whether they come from the task line itself or are
inherited from frontmatter and project config.
"""

import re
from typing import Dict, Iterable, List, Optional

_LEADING_INT_RE = re.compile(r"[+-]?\d+")

PRIORITY_MIN = 1
PRIORITY_MAX = 5

PRIORITY_MAP: Dict[str, int] = {
    "highest": 5,
    "high": 4,
    "medium": 3,
    "low": 2,
    "lowest": 1,
    "urgent": 5,
    "critical": 5,
    "important": 4,
    "normal": 3,
    "moderate": 3,
    "minor": 2,
    "trivial": 1,
    # Tasks plugin priority markers
    "🔺": 5,
    "⏫": 4,
    "🔼": 3,
    "🔽": 2,
    "⏬️": 1,
    "⏬": 1,
}

# Value recorded for a bare marker emoji that carries no text after it
EMOJI_DEFAULT_VALUES: Dict[str, str] = {
    "🔺": "highest",
    "⏫": "high",
    "🔼": "medium",
    "🔽": "low",
    "⏬️": "lowest",
    "⏬": "lowest",
}


def normalize_tag(tag: str) -> str:
    """
    Ensure a tag carries exactly one leading ``#``.

    Blank input normalises to the empty string.
    """
    trimmed = tag.strip()
    if not trimmed or trimmed.startswith("#"):
        return trimmed
    return f"#{trimmed}"


def merge_tags(base: Iterable[str], inherited: Iterable[str] = ()) -> List[str]:
    """Normalise both lists into one, keeping the first occurrence of each tag."""
    merged = (normalize_tag(t) for t in [*base, *inherited])
    return list(dict.fromkeys(t for t in merged if t))


def parse_priority(value) -> Optional[int]:
    """
    Resolve a priority value to an integer in PRIORITY_MIN..PRIORITY_MAX.

    Accepts ints, numeric strings ("2", "3 stars" reads as 3), the textual
    names in PRIORITY_MAP and the Tasks plugin priority emoji. Numbers
    outside the range resolve to None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _in_range(int(value))

    text = str(value).strip()
    if not text:
        return None

    m = _LEADING_INT_RE.match(text)
    if m:
        return _in_range(int(m.group()))

    return PRIORITY_MAP.get(text.lower(), PRIORITY_MAP.get(text))


def _in_range(priority: int) -> Optional[int]:
    return priority if PRIORITY_MIN <= priority <= PRIORITY_MAX else None


def normalize_priority_value(value) -> str:
    """
    Convert a priority to its numeric string when possible.

    Unknown values are returned unchanged (as a string) so later stages can
    still see what the author wrote.
    """
    if value is None:
        return str(value)
    resolved = parse_priority(value)
    return str(resolved) if resolved is not None else str(value)


def split_ids(value: str) -> List[str]:
    """Split a comma-separated id list, dropping blanks."""
    return [part.strip() for part in value.split(",") if part.strip()]
