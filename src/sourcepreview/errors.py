from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_URL = "INVALID_URL"
    UNSUPPORTED_SCHEME = "UNSUPPORTED_SCHEME"
    BLOCKED_EXTENSION = "BLOCKED_EXTENSION"
    NETWORK_ERROR = "NETWORK_ERROR"
    BAD_STATUS = "BAD_STATUS"
    NOT_HTML = "NOT_HTML"
    OEMBED_INVALID = "OEMBED_INVALID"
    NO_CANDIDATE = "NO_CANDIDATE"


class PreviewError(Exception):
    """Raised by fetchers and adapters for every expected rejection path.

    The orchestrators (PreviewCache, RedirectResolver) catch it at their
    boundary and turn it into a ``None`` result. Tool handlers raise it for
    malformed tool input, and server.py serialises it into the MCP error
    envelope.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
            }
        }
