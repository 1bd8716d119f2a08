"""Preview cache: the entry point for link previews.

``PreviewCache.resolve_preview`` canonicalises the URL, serves fresh cache
entries, joins an in-flight fetch for the same key or starts one, and records
the outcome. Positive previews are persisted to disk; negative outcomes stay
in memory only. Nothing raises across ``resolve_preview``: every failure is
indistinguishable from "nothing to show".

All reads and writes of ``_entries`` and ``_in_flight`` happen either under
``_lock`` or in the fetch task's done-callback, both of which run on the
event loop without yielding. Network I/O runs in the fetch task, outside the
lock.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from sourcepreview.coalesce import await_shared, cancel_all
from sourcepreview.errors import ErrorCode, PreviewError
from sourcepreview.extractor import extract_preview
from sourcepreview.fetcher import HtmlFetcher
from sourcepreview.models.cache import CacheEntry
from sourcepreview.normalizer import normalize
from sourcepreview.oembed import OEmbedClient, canonical_x_status_url
from sourcepreview.store import PreviewStore

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from sourcepreview.config import Settings
    from sourcepreview.protocols import (
        HtmlFetcherProtocol,
        Normalizer,
        OEmbedProtocol,
        PreviewStoreProtocol,
    )

log = structlog.get_logger()

DEFAULT_TTL = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PreviewCache:
    """Coalescing, TTL-bounded, disk-backed cache of link previews."""

    def __init__(
        self,
        html_fetcher: HtmlFetcherProtocol,
        oembed: OEmbedProtocol,
        *,
        store: PreviewStoreProtocol | None = None,
        normalizer: Normalizer = normalize,
        ttl: timedelta = DEFAULT_TTL,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._html_fetcher = html_fetcher
        self._oembed = oembed
        self._store = store
        self._normalize = normalizer
        self._ttl = ttl
        self._now = now
        self._lock = asyncio.Lock()
        self._in_flight: dict[str, asyncio.Task[str | None]] = {}
        self._entries: dict[str, CacheEntry] = store.load(now(), ttl) if store is not None else {}

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient) -> PreviewCache:
        """Wire the default fetchers and (if enabled) the JSON store."""
        preview = settings.preview
        store = PreviewStore(Path(preview.cache_path)) if preview.persist else None
        return cls(
            HtmlFetcher(client, preview),
            OEmbedClient(client, settings.oembed, request_timeout=preview.request_timeout),
            store=store,
            ttl=timedelta(days=preview.ttl_days),
        )

    async def resolve_preview(self, raw_url: str) -> str | None:
        """Return a short description for ``raw_url``, or ``None``. Never raises."""
        canonical = self._normalize(raw_url)
        if canonical is None:
            log.debug("preview_url_rejected", raw_url=raw_url)
            return None

        async with self._lock:
            entry = self._entries.get(canonical)
            if entry is not None:
                if not entry.is_expired(self._now(), self._ttl):
                    log.debug("preview_cache_hit", url=canonical, positive=entry.preview_text is not None)
                    return entry.preview_text
                log.debug("preview_cache_expired", url=canonical)
                del self._entries[canonical]

            task = self._in_flight.get(canonical)
            if task is None:
                log.debug("preview_cache_miss", url=canonical)
                task = asyncio.create_task(self._fetch(canonical))
                self._in_flight[canonical] = task
                # Registered before any waiter, so it runs before waiters resume
                task.add_done_callback(partial(self._record_outcome, canonical))
            else:
                log.debug("preview_fetch_joined", url=canonical)

        return await await_shared(task)

    async def aclose(self) -> None:
        """Cancel outstanding fetches. Their waiters receive ``None``."""
        async with self._lock:
            tasks = list(self._in_flight.values())
        await cancel_all(tasks)

    def cached_entry(self, raw_url: str) -> CacheEntry | None:
        """Return the in-memory entry for ``raw_url`` without fetching."""
        canonical = self._normalize(raw_url)
        if canonical is None:
            return None
        return self._entries.get(canonical)

    def _record_outcome(self, canonical: str, task: asyncio.Task[str | None]) -> None:
        if self._in_flight.get(canonical) is task:
            del self._in_flight[canonical]

        if task.cancelled():
            log.debug("preview_fetch_cancelled", url=canonical)
            return

        preview = task.result()
        self._entries[canonical] = CacheEntry(preview_text=preview, fetched_at=self._now())

        if preview is not None and self._store is not None:
            self._store.save(self._entries, self._now(), self._ttl)

    async def _fetch(self, canonical: str) -> str | None:
        """Run one fetch attempt; every failure becomes ``None``."""
        try:
            preview = await self._fetch_preview_text(canonical)
        except PreviewError as exc:
            log.info("preview_unavailable", url=canonical, code=exc.code, reason=exc.message)
            return None
        except asyncio.CancelledError:
            raise
        except Exception:
            log.warning("preview_fetch_failed", url=canonical, exc_info=True)
            return None

        log.info("preview_resolved", url=canonical, length=len(preview))
        return preview

    async def _fetch_preview_text(self, canonical: str) -> str:
        status_url = canonical_x_status_url(canonical)
        if status_url is not None:
            return await self._oembed.fetch_preview(status_url)

        html = await self._html_fetcher.fetch_html(canonical)
        preview = extract_preview(html)
        if preview is None:
            raise PreviewError(
                code=ErrorCode.NO_CANDIDATE,
                message=f"No preview text found in {canonical}",
            )
        return preview
