"""Redirect resolver for search-result tracking links.

Expands a small allowlist of known indirection URLs to their real
destination. Same canonicalise / cache / join-or-start pattern as the
preview cache, but memory-only and without expiry: a resolved redirect is
assumed stable for the life of the process.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlsplit

import httpx
import structlog

from sourcepreview.coalesce import await_shared, cancel_all
from sourcepreview.normalizer import normalize

if TYPE_CHECKING:
    from sourcepreview.config import Settings
    from sourcepreview.protocols import Normalizer

log = structlog.get_logger()

# Query keys that carry the destination, in lookup order
REDIRECT_QUERY_KEYS: tuple[str, ...] = ("url", "u", "target", "dest", "redirect", "adurl", "link")

_ALWAYS_REDIRECT_HOSTS: frozenset[str] = frozenset({"vertexaisearch.cloud.google.com"})
_SEARCH_REDIRECT_HOSTS: frozenset[str] = frozenset({"google.com", "www.google.com"})
_SEARCH_REDIRECT_PATH = "/url"


def is_redirect_candidate(url: str) -> bool:
    """True for URLs on the indirection allowlist. No network I/O."""
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    if host in _ALWAYS_REDIRECT_HOSTS:
        return True
    return host in _SEARCH_REDIRECT_HOSTS and parts.path.lower() == _SEARCH_REDIRECT_PATH


def destination_from_query(url: str) -> str | None:
    """Return an absolute http(s) destination carried in the query string."""
    pairs = parse_qsl(urlsplit(url).query, keep_blank_values=False)
    if not pairs:
        return None

    for key in REDIRECT_QUERY_KEYS:
        value = next((v for k, v in pairs if k.lower() == key), None)
        if value is None:
            continue
        target = urlsplit(value.strip())
        if target.scheme.lower() in ("http", "https") and target.hostname:
            return value.strip()
    return None


def _same_url(candidate: str, canonical: str) -> bool:
    normalized = normalize(candidate) or candidate
    return normalized.casefold() == canonical.casefold()


class RedirectResolver:
    """Coalescing, memory-only resolver for tracking redirects."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        normalizer: Normalizer = normalize,
        request_timeout: float = 8.0,
        resolve_query_parameters: bool = True,
    ) -> None:
        self._client = client
        self._normalize = normalizer
        self._timeout = httpx.Timeout(request_timeout)
        self._resolve_query_parameters = resolve_query_parameters
        self._lock = asyncio.Lock()
        self._resolved: dict[str, str | None] = {}
        self._in_flight: dict[str, asyncio.Task[str | None]] = {}

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient) -> RedirectResolver:
        return cls(
            client,
            request_timeout=settings.redirect.request_timeout,
            resolve_query_parameters=settings.redirect.resolve_query_parameters,
        )

    async def resolve_redirect(self, raw_url: str) -> str | None:
        """Return the destination of an allowlisted redirect URL, or ``None``.

        Never raises. Non-allowlisted URLs return ``None`` without network I/O.
        """
        canonical = self._normalize(raw_url)
        if canonical is None or not is_redirect_candidate(canonical):
            return None

        async with self._lock:
            if canonical in self._resolved:
                log.debug("redirect_cache_hit", url=canonical)
                return self._resolved[canonical]

            task = self._in_flight.get(canonical)
            if task is None:
                task = asyncio.create_task(self._resolve(canonical))
                self._in_flight[canonical] = task
                task.add_done_callback(partial(self._record_outcome, canonical))

        return await await_shared(task)

    async def aclose(self) -> None:
        """Cancel outstanding probes. Their waiters receive ``None``."""
        async with self._lock:
            tasks = list(self._in_flight.values())
        await cancel_all(tasks)

    def _record_outcome(self, canonical: str, task: asyncio.Task[str | None]) -> None:
        if self._in_flight.get(canonical) is task:
            del self._in_flight[canonical]
        if not task.cancelled():
            self._resolved[canonical] = task.result()

    async def _resolve(self, canonical: str) -> str | None:
        try:
            destination = await self._resolve_final_url(canonical)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.warning("redirect_resolve_failed", url=canonical, exc_info=True)
            return None

        if destination is None:
            log.info("redirect_unresolved", url=canonical)
        else:
            log.info("redirect_resolved", url=canonical, destination=destination)
        return destination

    async def _resolve_final_url(self, canonical: str) -> str | None:
        if self._resolve_query_parameters:
            destination = destination_from_query(canonical)
            if destination is not None:
                return destination

        final_url = await self._probe("HEAD", canonical)
        if final_url is not None and not _same_url(final_url, canonical):
            return final_url

        # Some redirectors reject HEAD; retry with a one-byte GET
        final_url = await self._probe("GET", canonical, headers={"Range": "bytes=0-0"})
        if final_url is not None and not _same_url(final_url, canonical):
            return final_url

        return None

    async def _probe(
        self, method: str, url: str, headers: dict[str, str] | None = None
    ) -> str | None:
        """Issue one request following redirects; return the final URL."""
        try:
            async with self._client.stream(
                method,
                url,
                headers=headers,
                follow_redirects=True,
                timeout=self._timeout,
            ) as response:
                return str(response.url)
        except (httpx.HTTPError, httpx.InvalidURL):
            log.debug("redirect_probe_failed", url=url, method=method, exc_info=True)
            return None
