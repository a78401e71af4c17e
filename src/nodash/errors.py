"""
Exception hierarchy for nodash.

PURPOSE: Typed errors for the operations that are expected to fail loudly.
AI CONTEXT: Degraded paths (pointer reads, mid-session appends) never raise;
everything else raises one of these or lets OSError propagate.
"""

from __future__ import annotations

__all__ = [
    "NodashError",
    "ConfigError",
    "ClientError",
    "StaleSessionError",
]


class NodashError(Exception):
    """Base class for all nodash errors."""


class ConfigError(NodashError):
    """Raised when user configuration cannot be read, written or validated."""


class ClientError(NodashError):
    """
    Raised when an HTTP request to the analytics backend fails.

    Attributes:
        status_code: HTTP status of the failed response, or None when the
            request never produced one (connection refused, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StaleSessionError(NodashError):
    """Raised when a RecordingSession handle no longer matches the active pointer."""
