"""
Overlay clock times onto calendar dates.

Dates arrive as epoch milliseconds or ``YYYY-MM-DD[ HH:MM]`` strings; times
arrive as the role-keyed TimeComponent mapping produced by
TimeParsingService.parse_time_components().
"""

from datetime import datetime
from typing import Any, Mapping, Optional

from mdtasks.models.time import (
    DUE_TIME,
    END_TIME,
    SCHEDULED_TIME,
    START_TIME,
    EnhancedDates,
    TimeComponent,
)
from mdtasks.utils.dates import coerce_to_datetime


def combine_date_time(date_value: Any, component: Optional[TimeComponent]) -> Optional[datetime]:
    """Keep the date's year/month/day, take hour/minute/second from component."""
    if component is None:
        return None
    base = coerce_to_datetime(date_value)
    if base is None:
        return None
    return datetime(
        base.year,
        base.month,
        base.day,
        component.hour,
        component.minute,
        component.second or 0,
    )


def combine_timestamps_with_time_components(
    dates: Mapping[str, Any],
    time_components: Optional[Mapping[str, TimeComponent]],
) -> Optional[EnhancedDates]:
    """
    Build EnhancedDates from dates keyed startDate/dueDate/scheduledDate/completedDate.

    Besides the direct pairings (start+startTime, due+dueTime,
    scheduled+scheduledTime) three fallbacks apply:

    - a start date with no start time and no due date takes the dueTime;
    - due borrows scheduledTime when it has no dueTime, and scheduled
      borrows dueTime when it has no scheduledTime;
    - endTime lands on the start date, else on the first of due,
      scheduled, completed.

    Returns None when nothing combines.
    """
    if not time_components:
        return None

    start = dates.get("startDate")
    due = dates.get("dueDate")
    scheduled = dates.get("scheduledDate")
    completed = dates.get("completedDate")

    start_time = time_components.get(START_TIME)
    due_time = time_components.get(DUE_TIME)
    scheduled_time = time_components.get(SCHEDULED_TIME)
    end_time = time_components.get(END_TIME)

    result = EnhancedDates()

    if start and start_time:
        result.start_date_time = combine_date_time(start, start_time)
    if start and not start_time and not due and due_time:
        result.start_date_time = combine_date_time(start, due_time)

    if due:
        result.due_date_time = combine_date_time(due, due_time or scheduled_time)

    if scheduled:
        result.scheduled_date_time = combine_date_time(scheduled, scheduled_time or due_time)

    if end_time:
        anchor = next((v for v in (start, due, scheduled, completed) if v), None)
        if anchor is not None:
            result.end_date_time = combine_date_time(anchor, end_time)

    return None if result.is_empty() else result
