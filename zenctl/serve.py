from __future__ import annotations

import logging

from fastmcp import FastMCP

from .process_manager import ProcessLifecycleController
from .tools import ALL_TOOL_CLASSES

logger = logging.getLogger(__name__)

__all__ = ["build_app", "serve"]


def build_app(controller: ProcessLifecycleController) -> FastMCP:  # noqa: D401 – helper
    """Return a *FastMCP* application with all *zenctl* tools registered."""

    app = FastMCP(
        "ZenCtl",
        instructions=(
            "Inspect and stop the Zen MCP server installed at "
            f"{controller.config.root}."
        ),
    )

    for tool_cls in ALL_TOOL_CLASSES:
        tool = tool_cls()
        tool.register_tool(controller, app)

    return app


def serve(controller: ProcessLifecycleController) -> None:
    """Serve the *zenctl* tools over stdio until the client disconnects."""

    app = build_app(controller)
    logger.info("Starting MCP stdio server for %s", controller.config.root)

    try:
        app.run(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server shutdown requested (Ctrl+C)")
    finally:
        logger.info("Server process exiting")
