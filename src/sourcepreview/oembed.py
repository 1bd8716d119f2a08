"""oEmbed adapter for social post URLs.

Status pages on x.com / twitter.com render their text with JavaScript, so the
generic HTML path finds nothing useful. For those URLs the preview comes from
the public oEmbed endpoint instead; the generic fetch is never attempted.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import httpx
import structlog

from sourcepreview.errors import ErrorCode, PreviewError
from sourcepreview.extractor import extract_preview

if TYPE_CHECKING:
    from sourcepreview.config import OEmbedSettings

log = structlog.get_logger()

SOCIAL_HOSTS: tuple[str, ...] = ("x.com", "twitter.com")

_NUMERIC_ID_RE = re.compile(r"^\d+$")
_WHITESPACE_RE = re.compile(r"\s+")


def _is_social_host(host: str) -> bool:
    host = host.lower().rstrip(".")
    return any(host == base or host.endswith(f".{base}") for base in SOCIAL_HOSTS)


def canonical_x_status_url(url: str) -> str | None:
    """Rewrite a post URL to ``https://x.com/...``; ``None`` if it is not a post.

    Recognised paths (tokens case-insensitive, numeric id, trailing segments
    such as ``/photo/1`` dropped):
      /<user>/status/<id>
      /i/web/status/<id>
      /i/status/<id>
    """
    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https"):
        return None
    if not parts.hostname or not _is_social_host(parts.hostname):
        return None

    segments = [segment for segment in parts.path.split("/") if segment]
    lowered = [segment.lower() for segment in segments]

    if (
        len(segments) >= 4
        and lowered[:3] == ["i", "web", "status"]
        and _NUMERIC_ID_RE.match(segments[3])
    ):
        return f"https://x.com/i/web/status/{segments[3]}"

    if len(segments) >= 3 and lowered[:2] == ["i", "status"] and _NUMERIC_ID_RE.match(segments[2]):
        return f"https://x.com/i/status/{segments[2]}"

    if len(segments) >= 3 and lowered[1] == "status" and _NUMERIC_ID_RE.match(segments[2]):
        return f"https://x.com/{segments[0]}/status/{segments[2]}"

    return None


def extract_post_preview(payload: bytes | str | dict[str, Any]) -> str | None:
    """Pull a preview out of an oEmbed response body.

    Prefers the embed ``html`` fragment run through the HTML extractor, and
    falls back to the whitespace-collapsed ``title``.
    """
    if isinstance(payload, dict):
        document: Any = payload
    else:
        try:
            document = json.loads(payload)
        except ValueError:
            return None
    if not isinstance(document, dict):
        return None

    embed_html = document.get("html")
    if isinstance(embed_html, str) and embed_html.strip():
        preview = extract_preview(embed_html)
        if preview is not None:
            return preview

    title = document.get("title")
    if isinstance(title, str):
        collapsed = _WHITESPACE_RE.sub(" ", title).strip()
        if collapsed:
            return collapsed

    return None


class OEmbedClient:
    """Fetches post previews from the oEmbed endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: OEmbedSettings,
        *,
        request_timeout: float = 7.0,
    ) -> None:
        self._client = client
        self._endpoint = settings.endpoint
        self._omit_script = settings.omit_script
        self._timeout = httpx.Timeout(request_timeout)

    async def fetch_preview(self, status_url: str) -> str:
        """Return the preview for a canonical status URL.

        Raises PreviewError on network failure, a bad status, or a payload
        that yields no text.
        """
        params = {"url": status_url}
        if self._omit_script:
            params["omit_script"] = "1"

        try:
            response = await self._client.get(
                self._endpoint,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise PreviewError(
                code=ErrorCode.NETWORK_ERROR,
                message=f"Network error fetching oEmbed for {status_url}: {exc}",
            ) from exc

        if not response.is_success:
            raise PreviewError(
                code=ErrorCode.BAD_STATUS,
                message=f"HTTP {response.status_code} from oEmbed for {status_url}",
            )

        preview = extract_post_preview(response.content)
        if preview is None:
            raise PreviewError(
                code=ErrorCode.OEMBED_INVALID,
                message=f"oEmbed payload for {status_url} has no usable text",
            )

        log.debug("oembed_preview_fetched", url=status_url)
        return preview
