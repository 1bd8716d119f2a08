"""Application state container.

AppState is created once at startup by ``open_app_state`` (the MCP server's
lifespan uses it, and embedding applications can too) and passed to every
tool handler.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from sourcepreview.fetcher import build_http_client
from sourcepreview.preview import PreviewCache
from sourcepreview.redirect import RedirectResolver

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx

    from sourcepreview.config import Settings

log = structlog.get_logger()


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings
    http_client: httpx.AsyncClient
    preview_cache: PreviewCache
    redirect_resolver: RedirectResolver


@asynccontextmanager
async def open_app_state(settings: Settings) -> AsyncGenerator[AppState, None]:
    """Create the shared client and both orchestrators; tear them down on exit."""
    http_client = build_http_client(settings.preview)
    state = AppState(
        settings=settings,
        http_client=http_client,
        preview_cache=PreviewCache.from_settings(settings, http_client),
        redirect_resolver=RedirectResolver.from_settings(settings, http_client),
    )
    log.info(
        "app_state_ready",
        persist=settings.preview.persist,
        cache_path=settings.preview.cache_path,
    )
    try:
        yield state
    finally:
        await state.preview_cache.aclose()
        await state.redirect_resolver.aclose()
        await http_client.aclose()
        log.info("app_state_closed")
