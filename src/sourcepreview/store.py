"""JSON file persistence for the preview cache.

One document per installation::

    {"version": 1, "entries": {"<canonical-url>": {"previewText": "...", "fetchedAt": 1.7e9}}}

Only unexpired positive previews are written. Every read and write failure
is logged and swallowed: a missing, unreadable, corrupt or wrong-version file
yields an empty cache, and a failed write leaves the in-memory cache intact.
Errors are logged with ``exc_info=True`` so they remain observable on stderr.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from sourcepreview.models.cache import (
    CACHE_FILE_VERSION,
    CacheEntry,
    DiskCacheEntry,
    DiskCachePayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime, timedelta

log = structlog.get_logger()


class PreviewStore:
    """Reads and rewrites the on-disk preview payload."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self, now: datetime, ttl: timedelta) -> dict[str, CacheEntry]:
        """Return unexpired positive entries from disk. Never raises."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError:
            log.warning("preview_cache_read_error", path=str(self.path), exc_info=True)
            return {}

        try:
            document = json.loads(raw)
        except ValueError:
            log.warning("preview_cache_corrupt", path=str(self.path), exc_info=True)
            return {}

        if not isinstance(document, dict) or document.get("version") != CACHE_FILE_VERSION:
            log.warning(
                "preview_cache_version_mismatch",
                path=str(self.path),
                version=document.get("version") if isinstance(document, dict) else None,
            )
            return {}

        raw_entries = document.get("entries")
        if not isinstance(raw_entries, dict):
            return {}

        loaded: dict[str, CacheEntry] = {}
        skipped = 0
        for url, raw_entry in raw_entries.items():
            try:
                disk_entry = DiskCacheEntry.model_validate(raw_entry)
            except ValidationError:
                skipped += 1
                continue
            entry = CacheEntry(preview_text=disk_entry.preview_text, fetched_at=disk_entry.fetched_at)
            if entry.is_expired(now, ttl):
                continue
            loaded[url] = entry

        log.info("preview_cache_loaded", entry_count=len(loaded), skipped=skipped)
        return loaded

    def save(self, entries: Mapping[str, CacheEntry], now: datetime, ttl: timedelta) -> None:
        """Rewrite the file with unexpired positive entries. Never raises.

        Removes the file when nothing is left to persist.
        """
        payload = DiskCachePayload(
            version=CACHE_FILE_VERSION,
            entries={
                url: DiskCacheEntry(preview_text=entry.preview_text, fetched_at=entry.fetched_at)
                for url, entry in entries.items()
                if entry.preview_text and not entry.is_expired(now, ttl)
            },
        )

        try:
            if not payload.entries:
                self.path.unlink(missing_ok=True)
                return

            self.path.parent.mkdir(parents=True, exist_ok=True)
            data = payload.model_dump_json(by_alias=True)
            # Atomic replace: write a sibling temp file, then rename over the target
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                    tmp.write(data)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError:
            log.warning("preview_cache_write_error", path=str(self.path), exc_info=True)
            return

        log.debug("preview_cache_saved", entry_count=len(payload.entries))
