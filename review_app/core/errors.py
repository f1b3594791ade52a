"""Exception types shared by the tracker adapters, config layer, and service."""

from __future__ import annotations


class ConfigError(ValueError):
    """Invalid or incomplete run configuration."""


class TrackerAPIError(RuntimeError):
    def __init__(self, message: str, *, url: str | None = None, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.url = url
        self.status = status
        self.body = body[:200]


class RateLimitError(TrackerAPIError):
    """Raised once the retry budget for a rate-limited endpoint is spent."""
