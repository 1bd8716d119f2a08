from __future__ import annotations

from sourcepreview.models.cache import (
    CACHE_FILE_VERSION,
    CacheEntry,
    DiskCacheEntry,
    DiskCachePayload,
    parse_timestamp,
)
from sourcepreview.models.tools import (
    ResolvePreviewInput,
    ResolvePreviewOutput,
    ResolveRedirectInput,
    ResolveRedirectOutput,
)

__all__ = [
    # cache
    "CACHE_FILE_VERSION",
    "CacheEntry",
    "DiskCacheEntry",
    "DiskCachePayload",
    "parse_timestamp",
    # tools
    "ResolvePreviewInput",
    "ResolvePreviewOutput",
    "ResolveRedirectInput",
    "ResolveRedirectOutput",
]
