"""
Request-level exceptions.

Provider-level failures are never raised; they travel as ``ProviderResult``
values tagged with an ``ErrorKind``. Only the conditions below escape to the
caller of a feed request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .core.types import ProviderStatus


class AtlasError(Exception):
    """Base class for all atlas_feed errors."""


class ConfigurationError(AtlasError):
    """Missing or invalid configuration, credentials or preferences."""


class FeedUnavailableError(AtlasError):
    """Every enabled provider failed for the same request."""

    def __init__(self, message: str, statuses: list[ProviderStatus] | None = None):
        super().__init__(message)
        self.statuses = list(statuses or [])


class FeedTimeoutError(AtlasError):
    """The outer request timeout expired before all providers settled."""
