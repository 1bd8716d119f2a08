"""Bounded HTML fetcher for link previews.

All network I/O for previews goes through a single httpx.AsyncClient shared
with the oEmbed adapter and the redirect resolver. The client is created by
``build_http_client`` and owned by the lifespan (see state.py); fetchers
receive it via constructor injection.
"""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx
import structlog

from sourcepreview.errors import ErrorCode, PreviewError

if TYPE_CHECKING:
    from sourcepreview.config import PreviewSettings

log = structlog.get_logger()

BLOCKED_PATH_EXTENSIONS: frozenset[str] = frozenset(
    {
        # images
        "jpg", "jpeg", "png", "gif", "webp", "svg", "ico",
        # documents and archives
        "pdf", "zip", "gz", "tar", "rar", "7z",
        # audio
        "mp3", "wav", "ogg", "flac", "m4a",
        # video
        "mp4", "mov", "mkv", "avi", "webm",
    }
)  # fmt: skip


def build_http_client(settings: PreviewSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        # Redirect resolution relies on the client following redirects
        follow_redirects=True,
        timeout=httpx.Timeout(settings.request_timeout),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


def path_extension(url: str) -> str:
    """Return the lowercased extension of the last path segment (``''`` if none)."""
    path = urlsplit(url).path
    _, ext = posixpath.splitext(posixpath.basename(path))
    return ext[1:].lower()


def check_fetchable(url: str) -> None:
    """Raise PreviewError if ``url`` must not be fetched. No network I/O."""
    scheme = urlsplit(url).scheme.lower()
    if scheme not in ("http", "https"):
        raise PreviewError(
            code=ErrorCode.UNSUPPORTED_SCHEME,
            message=f"Unsupported scheme {scheme!r} for {url}",
        )

    extension = path_extension(url)
    if extension and extension in BLOCKED_PATH_EXTENSIONS:
        raise PreviewError(
            code=ErrorCode.BLOCKED_EXTENSION,
            message=f"Blocked file extension {extension!r} for {url}",
        )


def is_likely_html(content_type: str | None) -> bool:
    """Treat a response as HTML unless its Content-Type names json or xml.

    ``application/xhtml+xml`` is HTML despite the ``xml`` suffix.
    """
    if content_type is None:
        return True
    lowered = content_type.lower()
    if "text/html" in lowered or "application/xhtml+xml" in lowered:
        return True
    return "json" not in lowered and "xml" not in lowered


def decode_body(data: bytes, *, truncated: bool = False) -> str:
    """Decode as UTF-8, falling back to Latin-1 (which never fails).

    When the body was cut at the byte cap, an incomplete multi-byte sequence
    at the very end is dropped instead of sending the whole page to Latin-1.
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        # A UTF-8 sequence is at most 4 bytes, so a cut one leaves at most 3
        if truncated and exc.end == len(data) and len(data) - exc.start <= 3:
            return data[: exc.start].decode("utf-8")
        return data.decode("latin-1")


async def read_limited(response: httpx.Response, max_bytes: int) -> bytes:
    """Read at most ``max_bytes`` from a streamed response body."""
    buffer = bytearray()
    async for chunk in response.aiter_bytes():
        buffer.extend(chunk)
        if len(buffer) >= max_bytes:
            break
    return bytes(buffer[:max_bytes])


class HtmlFetcher:
    """Timed, size-capped GET for preview pages."""

    def __init__(self, client: httpx.AsyncClient, settings: PreviewSettings) -> None:
        self._client = client
        self._max_bytes = settings.max_download_bytes
        self._timeout = httpx.Timeout(settings.request_timeout)
        self._headers = {
            "Accept": settings.accept,
            "User-Agent": settings.user_agent,
            "Range": f"bytes=0-{settings.max_download_bytes - 1}",
        }

    async def fetch_html(self, url: str) -> str:
        """Fetch ``url`` and return its (possibly truncated) HTML text.

        Raises PreviewError for disallowed URLs, network errors, statuses
        outside [200, 400) and non-HTML content types.
        """
        check_fetchable(url)

        try:
            async with self._client.stream(
                "GET", url, headers=self._headers, timeout=self._timeout
            ) as response:
                if not 200 <= response.status_code < 400:
                    raise PreviewError(
                        code=ErrorCode.BAD_STATUS,
                        message=f"HTTP {response.status_code} fetching {url}",
                    )

                content_type = response.headers.get("content-type")
                if not is_likely_html(content_type):
                    raise PreviewError(
                        code=ErrorCode.NOT_HTML,
                        message=f"Content-Type {content_type!r} is not HTML for {url}",
                    )

                data = await read_limited(response, self._max_bytes)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise PreviewError(
                code=ErrorCode.NETWORK_ERROR,
                message=f"Network error fetching {url}: {exc}",
            ) from exc

        log.debug(
            "preview_page_fetched",
            url=url,
            status_code=response.status_code,
            byte_count=len(data),
        )
        return decode_body(data, truncated=len(data) >= self._max_bytes)
