"""REST API routes for task and time parsing."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from mdtasks.tools.task_tools import (
    handle_date_cache_status,
    handle_parse_tasks,
    handle_parse_tasks_legacy,
)
from mdtasks.tools.time_tools import handle_parse_time_components, handle_parse_time_expressions


class ParseTasksBody(BaseModel):
    text: str
    file_path: str = ""
    file_metadata: Optional[Dict[str, Any]] = None
    project_config_data: Optional[Dict[str, Any]] = None


class TimeTextBody(BaseModel):
    text: str
    reference: Optional[str] = None


def register_task_routes(app_router: APIRouter, parser) -> None:
    """Attach task parsing routes that use the shared parser."""

    @app_router.post("/tasks/parse")
    def parse_tasks(body: ParseTasksBody):
        try:
            return handle_parse_tasks(parser, **body.model_dump())
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app_router.post("/tasks/parse-legacy")
    def parse_tasks_legacy(body: ParseTasksBody):
        try:
            return handle_parse_tasks_legacy(parser, **body.model_dump())
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app_router.get("/cache/status")
    def get_cache_status(clear: bool = Query(False)):
        return handle_date_cache_status(parser, clear=clear)


def register_time_routes(app_router: APIRouter, service) -> None:
    """Attach time parsing routes that use the shared TimeParsingService."""

    @app_router.post("/time/parse")
    def parse_time(body: TimeTextBody):
        result = handle_parse_time_expressions(service, text=body.text, reference=body.reference)
        if "error" in result:
            raise HTTPException(status_code=400, detail=result["error"])
        return result

    @app_router.post("/time/components")
    def parse_components(body: TimeTextBody):
        return handle_parse_time_components(service, text=body.text)
