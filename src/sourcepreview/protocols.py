"""Protocol interfaces for swappable components.

The orchestrators reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory fakes that count calls
- Embedding applications to supply their own canonicaliser or storage
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime, timedelta

    from sourcepreview.models.cache import CacheEntry


class Normalizer(Protocol):
    """Canonicalises a raw URL into a cache key, or rejects it with ``None``."""

    def __call__(self, raw: str) -> str | None: ...


class HtmlFetcherProtocol(Protocol):
    """Interface for the generic HTML fetch path."""

    async def fetch_html(self, url: str) -> str: ...


class OEmbedProtocol(Protocol):
    """Interface for the social post oEmbed path."""

    async def fetch_preview(self, status_url: str) -> str: ...


class PreviewStoreProtocol(Protocol):
    """Interface for preview cache persistence."""

    def load(self, now: datetime, ttl: timedelta) -> dict[str, CacheEntry]: ...

    def save(self, entries: Mapping[str, CacheEntry], now: datetime, ttl: timedelta) -> None: ...
