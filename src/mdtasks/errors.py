"""Exception types and structured diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


class MdTasksError(Exception):
    """Base class for errors raised by mdtasks."""


class ConfigError(MdTasksError, ValueError):
    """A configuration value is out of range or malformed."""


@dataclass(frozen=True)
class TimeParsingError:
    """Diagnostic produced when time text is present but cannot be resolved."""

    original_text: str
    position: int
    message: str
    fallback_used: bool = True
    type: str = "invalid-format"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "original_text": self.original_text,
            "position": self.position,
            "message": self.message,
            "fallback_used": self.fallback_used,
        }


class TimeParsingFailure(MdTasksError):
    """Exception carrying a TimeParsingError diagnostic."""

    def __init__(self, error: TimeParsingError) -> None:
        super().__init__(error.message)
        self.error = error
