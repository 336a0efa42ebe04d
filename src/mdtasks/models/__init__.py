from mdtasks.errors import TimeParsingError

from .task import LegacyTask, TaskDocument, TaskRecord, TgProject
from .time import (
    DUE_TIME,
    END_TIME,
    SCHEDULED_TIME,
    START_TIME,
    EnhancedDates,
    LineParseResult,
    ParsedTimeResult,
    TimeComponent,
    TimeComponentsResult,
    TimeExpression,
    TimeMatch,
)

__all__ = [
    "LegacyTask",
    "TaskDocument",
    "TaskRecord",
    "TgProject",
    "EnhancedDates",
    "LineParseResult",
    "ParsedTimeResult",
    "TimeComponent",
    "TimeComponentsResult",
    "TimeParsingError",
    "TimeExpression",
    "TimeMatch",
    "START_TIME",
    "DUE_TIME",
    "SCHEDULED_TIME",
    "END_TIME",
]
