"""Custom exception types for the GitHub metrics collector."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import QueryRequest


class MetricsError(Exception):
    """Base exception for all recoverable metrics collector errors."""


class ConfigurationError(MetricsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(MetricsError):
    """Raised when a GitHub token is unavailable."""


class TransportError(MetricsError):
    """Raised when a GraphQL request fails or returns an unusable response.

    ``transient`` tells whether the failure was eligible for retry (timeouts,
    5xx, rate limiting). A transient error that still escapes the executor has
    exhausted its retries.
    """

    def __init__(
        self,
        message: str,
        *,
        request: Optional["QueryRequest"] = None,
        status: Optional[int] = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.status = status
        self.transient = transient


class ReplayMissError(MetricsError):
    """Raised in replay mode when a required response was never recorded."""


class StorageError(MetricsError):
    """Raised when a response cannot be persisted to the replay cache."""


class MalformedPageError(MetricsError):
    """Raised when a page lacks the pagination fields needed to continue."""
