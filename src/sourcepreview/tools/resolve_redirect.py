"""Tool handler for resolve_redirect."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from sourcepreview.errors import ErrorCode, PreviewError
from sourcepreview.models.tools import ResolveRedirectInput, ResolveRedirectOutput

if TYPE_CHECKING:
    from sourcepreview.state import AppState


async def handle(url: str, state: AppState) -> dict:
    """Handle a resolve_redirect tool call."""
    log = structlog.get_logger().bind(tool="resolve_redirect", url=url)
    log.info("handler_called")

    try:
        validated = ResolveRedirectInput(url=url)
    except ValueError as exc:
        raise PreviewError(
            code=ErrorCode.INVALID_URL,
            message=str(exc),
            suggestion="Provide a non-empty URL (max 2048 chars).",
        ) from exc

    resolved = await state.redirect_resolver.resolve_redirect(validated.url)
    log.info("resolve_redirect_complete", resolved=resolved is not None)

    return ResolveRedirectOutput(url=validated.url, resolved_url=resolved).model_dump(mode="json")
