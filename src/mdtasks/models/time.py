"""
Time-parsing data models.

A TimeComponent that is half of a range links to its partner through
range_partner. The link is for midnight-crossing checks only; it is excluded
from equality and repr so the pair never recurses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Optional

from mdtasks.errors import TimeParsingError

TimeRole = Literal["start", "due", "scheduled"]

# Keys used in the time_components mapping
START_TIME = "startTime"
DUE_TIME = "dueTime"
SCHEDULED_TIME = "scheduledTime"
END_TIME = "endTime"


@dataclass
class TimeComponent:
    """A clock time recovered from free text, normalised to 24-hour form."""

    hour: int
    minute: int
    second: Optional[int] = None
    original_text: str = ""
    is_range: bool = False
    range_partner: Optional[TimeComponent] = field(default=None, compare=False, repr=False)

    def as_tuple(self) -> tuple:
        return (self.hour, self.minute, self.second or 0)

    def format(self) -> str:
        if self.second is not None:
            return f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass
class TimeMatch:
    """A clock-time expression located in text, before date resolution."""

    text: str
    index: int
    is_range: bool = False
    time_component: Optional[TimeComponent] = None
    range_start: Optional[TimeComponent] = None
    range_end: Optional[TimeComponent] = None

    @property
    def primary(self) -> Optional[TimeComponent]:
        return self.time_component or self.range_start


@dataclass
class TimeExpression:
    """A resolved date expression, optionally carrying the clock time near it."""

    text: str
    date: datetime
    type: TimeRole
    index: int
    length: int
    time_component: Optional[TimeComponent] = None
    is_time_range: bool = False
    range_start: Optional[TimeComponent] = None
    range_end: Optional[TimeComponent] = None
    crosses_midnight: Optional[bool] = None


@dataclass
class ParsedTimeResult:
    original_text: str
    cleaned_text: str
    parsed_expressions: List[TimeExpression] = field(default_factory=list)
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    scheduled_date: Optional[datetime] = None
    time_components: Dict[str, TimeComponent] = field(default_factory=dict)


@dataclass
class LineParseResult:
    original_line: str
    cleaned_line: str
    parsed_expressions: List[TimeExpression] = field(default_factory=list)
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    scheduled_date: Optional[datetime] = None


@dataclass
class EnhancedDates:
    """Calendar dates combined with the clock times found on the same line."""

    start_date_time: Optional[datetime] = None
    due_date_time: Optional[datetime] = None
    scheduled_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None

    def is_empty(self) -> bool:
        return not any(
            (self.start_date_time, self.due_date_time, self.scheduled_date_time, self.end_date_time)
        )


@dataclass
class TimeComponentsResult:
    """Outcome of TimeParsingService.parse_time_components()."""

    time_components: Dict[str, TimeComponent] = field(default_factory=dict)
    errors: List[TimeParsingError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
