"""
mdtasks MCP server entry point.

Startup sequence:
1. Read MDTASKS_LOG_LEVEL and MDTASKS_DATE_CACHE_SIZE from environment
2. Build the DateParseCache, TimeParsingService and MarkdownTaskParser
3. Register all MCP tools
4. Start REST API server in background thread (if API_ENABLED)
5. Run MCP server (stdio transport)
"""

import logging
import os
import sys
import threading

from mcp.server.fastmcp import FastMCP

from mdtasks.cache.date_cache import DEFAULT_MAX_SIZE, DateParseCache
from mdtasks.config import create_default_parser_config
from mdtasks.parsers.task_parser import MarkdownTaskParser
from mdtasks.services.time_parsing import TimeParsingService
from mdtasks.tools import register_task_tools, register_time_tools

log = logging.getLogger(__name__)


def _configure_logging() -> None:
    level_name = os.environ.get("MDTASKS_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _start_api_server(parser: MarkdownTaskParser, time_service: TimeParsingService, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from mdtasks.api.app import create_app

    app = create_app(parser, time_service)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def build_parser() -> MarkdownTaskParser:
    """Wire a parser with a time service and a date cache sized from the environment."""
    cache_size = int(os.environ.get("MDTASKS_DATE_CACHE_SIZE", str(DEFAULT_MAX_SIZE)))
    return MarkdownTaskParser(
        create_default_parser_config(),
        time_service=TimeParsingService(),
        date_cache=DateParseCache(max_size=cache_size),
    )


def main() -> None:
    _configure_logging()

    try:
        parser = build_parser()
    except ValueError as e:
        log.error("Invalid configuration: %s", e)
        sys.exit(1)

    api_enabled = os.environ.get("API_ENABLED", "true").lower() in ("true", "1", "yes")
    if api_enabled:
        api_port = int(os.environ.get("API_PORT", "9400"))
        api_thread = threading.Thread(
            target=_start_api_server, args=(parser, parser.time_service, api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("mdtasks")
    register_task_tools(mcp, parser)
    register_time_tools(mcp, parser.time_service)

    log.info("Starting mdtasks server")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
