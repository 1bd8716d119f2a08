"""Link previews and tracking-redirect expansion for search-result URLs.

The library entry points are ``PreviewCache.resolve_preview`` and
``RedirectResolver.resolve_redirect``; ``open_app_state`` wires both around
one shared httpx client, and ``sourcepreview.server`` exposes them over MCP.
"""

from __future__ import annotations

import warnings
from importlib import metadata

from sourcepreview.preview import PreviewCache
from sourcepreview.redirect import RedirectResolver

DISTRIBUTION_NAME = "sourcepreview"
FALLBACK_VERSION = "0.0.0+unknown"


def _resolve_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        # Imported straight from a source checkout that was never installed
        warnings.warn(
            f"{DISTRIBUTION_NAME} is not installed; reporting version {FALLBACK_VERSION!r}",
            RuntimeWarning,
            stacklevel=2,
        )
        return FALLBACK_VERSION


__version__ = _resolve_version()

__all__ = ["PreviewCache", "RedirectResolver", "__version__"]
