"""Errors raised by the cache layer itself.

Backing-store and Redis errors are never wrapped; they reach the caller as-is.
"""


class CacheError(Exception):
    """Base class for cache layer errors."""


class CachePopulationError(CacheError):
    """Raised when a fetch-through read finds no data, no lock and no retries left."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Failed to populate cache for {key!r} after {attempts} attempts")
