"""URL canonicalisation.

The canonical string is the single cache and de-duplication key used by both
orchestrators. Two raw strings that canonicalise identically share one slot.
"""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit


def normalize(raw: str) -> str | None:
    """Return the canonical form of ``raw``, or ``None`` if it is not a URL.

    Steps (order matters):
      1. Trim surrounding whitespace; reject empty input or inner whitespace
      2. Prefix ``https://`` when no scheme is present
      3. Lowercase scheme and host (port and userinfo kept); drop the fragment
    """
    trimmed = raw.strip()
    if not trimmed or any(ch.isspace() for ch in trimmed):
        return None

    candidate = trimmed if "://" in trimmed else f"https://{trimmed}"
    try:
        parts = urlsplit(candidate)
        parts.port  # noqa: B018 - raises ValueError on a malformed port
    except ValueError:
        return None

    if not parts.scheme or not parts.hostname:
        return None

    userinfo, sep, hostport = parts.netloc.rpartition("@")
    netloc = f"{userinfo}{sep}{hostport.lower()}"
    return urlunsplit((parts.scheme.lower(), netloc, parts.path, parts.query, ""))
