from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

CACHE_FILE_VERSION = 1

# Older files may carry seconds since 2001-01-01 instead of the Unix epoch.
# Any value that reads as earlier than 2000-01-01 in Unix time is one of those.
_REFERENCE_EPOCH = datetime(2001, 1, 1, tzinfo=UTC)
_UNIX_THRESHOLD = datetime(2000, 1, 1, tzinfo=UTC).timestamp()


def parse_timestamp(value: Any) -> datetime:
    """Decode a persisted ``fetchedAt`` value into an aware UTC datetime.

    Accepts epoch seconds as int/float or numeric string, and ISO-8601 /
    RFC 3339 strings. Raises ``ValueError`` for anything else.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            parsed = datetime.fromisoformat(text)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    if isinstance(value, int | float):
        try:
            seconds = float(value)
        except OverflowError as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc
        if not math.isfinite(seconds):
            raise ValueError(f"non-finite timestamp: {value!r}")
        try:
            if seconds < _UNIX_THRESHOLD:
                return _REFERENCE_EPOCH + timedelta(seconds=seconds)
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc
    raise ValueError(f"unsupported timestamp: {value!r}")


class CacheEntry(BaseModel):
    """In-memory outcome of one resolution attempt.

    ``preview_text`` of ``None`` is a cacheable "no preview found" result.
    """

    model_config = ConfigDict(frozen=True)

    preview_text: str | None
    fetched_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.fetched_at > ttl


class DiskCacheEntry(BaseModel):
    """One persisted positive preview. Written as Unix epoch seconds."""

    model_config = ConfigDict(populate_by_name=True)

    preview_text: str = Field(alias="previewText", min_length=1)
    fetched_at: datetime = Field(alias="fetchedAt")

    @field_validator("fetched_at", mode="before")
    @classmethod
    def _decode_fetched_at(cls, value: Any) -> datetime:
        return parse_timestamp(value)

    @field_serializer("fetched_at")
    def _encode_fetched_at(self, value: datetime) -> float:
        return value.timestamp()


class DiskCachePayload(BaseModel):
    version: int = CACHE_FILE_VERSION
    entries: dict[str, DiskCacheEntry] = {}
