"""
Time parsing tool handlers.

Same split as task_tools: handle_* return dicts, register_time_tools()
wraps them for MCP.
"""

import json
from datetime import datetime
from typing import Optional

from mcp.server.fastmcp import FastMCP

from mdtasks.services.time_parsing import TimeParsingService
from mdtasks.tools.task_tools import iso_or_none, time_component_to_dict


def _expression_to_dict(expr) -> dict:
    return {
        "text": expr.text,
        "date": expr.date.isoformat(),
        "type": expr.type,
        "index": expr.index,
        "length": expr.length,
        "time_component": time_component_to_dict(expr.time_component) if expr.time_component else None,
        "is_time_range": expr.is_time_range,
        "range_start": time_component_to_dict(expr.range_start) if expr.range_start else None,
        "range_end": time_component_to_dict(expr.range_end) if expr.range_end else None,
        "crosses_midnight": expr.crosses_midnight,
    }


def _parse_reference(reference: Optional[str]) -> Optional[datetime]:
    if not reference:
        return None
    return datetime.fromisoformat(reference)


# ---------------------------------------------------------------------------
# Handler functions
# ---------------------------------------------------------------------------


def handle_parse_time_expressions(
    service: TimeParsingService, *, text: str, reference: Optional[str] = None
) -> dict:
    try:
        ref = _parse_reference(reference)
    except ValueError:
        return {"error": f"Invalid reference datetime: {reference!r}"}

    result = service.parse_time_expressions(text, ref)
    return {
        "original_text": result.original_text,
        "cleaned_text": result.cleaned_text,
        "start_date": iso_or_none(result.start_date),
        "due_date": iso_or_none(result.due_date),
        "scheduled_date": iso_or_none(result.scheduled_date),
        "parsed_expressions": [_expression_to_dict(e) for e in result.parsed_expressions],
        "time_components": {
            role: time_component_to_dict(c) for role, c in result.time_components.items()
        },
    }


def handle_parse_time_components(service: TimeParsingService, *, text: str) -> dict:
    result = service.parse_time_components(text)
    return {
        "time_components": {
            role: time_component_to_dict(c) for role, c in result.time_components.items()
        },
        "errors": [e.to_dict() for e in result.errors],
        "warnings": list(result.warnings),
    }


# ---------------------------------------------------------------------------
# MCP registration
# ---------------------------------------------------------------------------


def register_time_tools(mcp: FastMCP, service: TimeParsingService) -> None:
    """Register the time parsing MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def parse_time_expressions(text: str, reference: Optional[str] = None) -> str:
        """
        Find date expressions in free text and pair them with nearby clock times.

        Understands ISO dates, "tomorrow", "next friday", "in 3 days",
        "March 15" and, for Chinese text, 明天 / 下周三 / 3天后.

        Args:
            text: Text to scan
            reference: ISO datetime used as "now" (default: current time)

        Returns:
            JSON object with start/due/scheduled dates, matched expressions
            and the text with them removed
        """
        return json.dumps(
            handle_parse_time_expressions(service, text=text, reference=reference), indent=2
        )

    @mcp.tool()
    def parse_time_components(text: str) -> str:
        """
        Extract clock times ("14:00", "2:30 PM", "9:00-10:30") keyed by role.

        Returns:
            JSON object with startTime/dueTime/scheduledTime/endTime entries,
            plus errors and warnings
        """
        return json.dumps(handle_parse_time_components(service, text=text), indent=2)
