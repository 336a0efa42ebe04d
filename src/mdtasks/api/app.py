"""FastAPI application factory for the mdtasks REST API."""

from fastapi import APIRouter, FastAPI

from mdtasks.api.routes import register_task_routes, register_time_routes
from mdtasks.parsers.task_parser import MarkdownTaskParser
from mdtasks.services.time_parsing import TimeParsingService


def create_app(parser: MarkdownTaskParser, time_service: TimeParsingService) -> FastAPI:
    """Build and return a FastAPI app wired to the given parser and time service."""
    app = FastAPI(title="mdtasks", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_task_routes(api, parser)
    register_time_routes(api, time_service)
    app.include_router(api)

    return app
