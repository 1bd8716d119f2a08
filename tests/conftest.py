"""Shared test fixtures for the sourcepreview test suite."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from sourcepreview.config import PreviewSettings, Settings
from sourcepreview.errors import ErrorCode, PreviewError

if TYPE_CHECKING:
    from pathlib import Path


class FakeClock:
    """Injectable ``now`` for TTL tests."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


class FakeHtmlFetcher:
    """In-memory HtmlFetcherProtocol that records every call.

    If ``gate`` is set, fetches block until it is released.
    """

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = pages or {}
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def fetch_html(self, url: str) -> str:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if url not in self.pages:
            raise PreviewError(code=ErrorCode.BAD_STATUS, message=f"HTTP 404 fetching {url}")
        return self.pages[url]


class FakeOEmbed:
    """In-memory OEmbedProtocol that records every call."""

    def __init__(self, previews: dict[str, str] | None = None) -> None:
        self.previews = previews or {}
        self.calls: list[str] = []

    async def fetch_preview(self, status_url: str) -> str:
        self.calls.append(status_url)
        if status_url not in self.previews:
            raise PreviewError(code=ErrorCode.OEMBED_INVALID, message="empty payload")
        return self.previews[status_url]


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture()
def html_fetcher() -> FakeHtmlFetcher:
    return FakeHtmlFetcher(
        {
            "https://example.com/article": (
                '<meta property="og:description" content="A great article about testing.">'
                "<p>Some body text.</p>"
            ),
            "https://example.com/empty": "<html><body></body></html>",
        }
    )


@pytest.fixture()
def oembed() -> FakeOEmbed:
    return FakeOEmbed({"https://x.com/someuser/status/12345": "Post text from oEmbed"})


@pytest.fixture()
def cache_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "source-preview-cache.json"


@pytest.fixture()
def settings(cache_path: Path) -> Settings:
    """Settings isolated from the user's data directory."""
    return Settings(preview=PreviewSettings(cache_path=str(cache_path)))


@pytest.fixture()
def settle():
    """Return ``wait_until`` for tests that need in-flight work to register."""
    return wait_until
