"""Integration test fixtures.

Provides a fully wired AppState (real httpx client, real orchestrators) whose
cache file lives under tmp_path. HTTP is mocked per test with respx.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from sourcepreview.state import open_app_state

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from sourcepreview.config import Settings
    from sourcepreview.state import AppState


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Baseline env dict for subprocess-based MCP integration tests.

    Points the cache file at an isolated tmp directory so a local
    sourcepreview.yaml or the user's data dir is never touched.
    """
    env = os.environ.copy()
    env["SOURCEPREVIEW__PREVIEW__CACHE_PATH"] = str(tmp_path / "source-preview-cache.json")
    env["SOURCEPREVIEW__LOGGING__LEVEL"] = "WARNING"
    return env


@pytest.fixture()
async def app_state(settings: Settings) -> AsyncGenerator[AppState, None]:
    """Full AppState as the server lifespan would build it."""
    async with open_app_state(settings) as state:
        yield state
