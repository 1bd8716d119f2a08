"""Tool handler for resolve_preview.

Receives AppState, delegates to the preview cache, and returns a structured
dict. No MCP or FastMCP imports; server.py handles the MCP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from sourcepreview.errors import ErrorCode, PreviewError
from sourcepreview.models.tools import ResolvePreviewInput, ResolvePreviewOutput

if TYPE_CHECKING:
    from sourcepreview.state import AppState


async def handle(url: str, state: AppState) -> dict:
    """Handle a resolve_preview tool call."""
    log = structlog.get_logger().bind(tool="resolve_preview", url=url)
    log.info("handler_called")

    try:
        validated = ResolvePreviewInput(url=url)
    except ValueError as exc:
        raise PreviewError(
            code=ErrorCode.INVALID_URL,
            message=str(exc),
            suggestion="Provide a non-empty URL (max 2048 chars).",
        ) from exc

    preview = await state.preview_cache.resolve_preview(validated.url)
    log.info("resolve_preview_complete", found=preview is not None)

    return ResolvePreviewOutput(url=validated.url, preview=preview).model_dump(mode="json")
