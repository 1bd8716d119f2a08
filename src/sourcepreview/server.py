"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register tools
- Run the stdio transport
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import sourcepreview.tools.resolve_preview as t_preview
import sourcepreview.tools.resolve_redirect as t_redirect
from sourcepreview import __version__
from sourcepreview.config import Settings
from sourcepreview.errors import PreviewError
from sourcepreview.logsetup import configure_logging
from sourcepreview.state import AppState, open_app_state

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    configure_logging(settings)

    log.info("server_starting", version=__version__)
    async with open_app_state(settings) as state:
        log.info("server_started", version=__version__)
        try:
            yield state
        finally:
            log.info("server_stopping")


mcp = FastMCP("sourcepreview", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg, so set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: PreviewError) -> CallToolResult:
    """Convert a PreviewError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


@mcp.tool()
async def resolve_preview(url: str, ctx: Context) -> object:
    """Return a short human-readable description of the page at a URL.

    The preview is null when the page cannot be fetched or has no usable text.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_preview.handle(url, state)
    except PreviewError as exc:
        log.warning("tool_error", tool="resolve_preview", code=exc.code, message=exc.message)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="resolve_preview", exc_info=True)
        raise


@mcp.tool()
async def resolve_redirect(url: str, ctx: Context) -> object:
    """Expand a search-engine tracking redirect to its real destination URL."""
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_redirect.handle(url, state)
    except PreviewError as exc:
        log.warning("tool_error", tool="resolve_redirect", code=exc.code, message=exc.message)
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="resolve_redirect", exc_info=True)
        raise


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
