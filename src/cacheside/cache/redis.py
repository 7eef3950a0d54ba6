"""Redis client management for cacheside.

Caches take their client by injection; the module-level client here backs
the convenience entry points (CLI, multi-endpoint purges) only.
Uses redis-py async client for connection pooling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import redis.asyncio as redis

from cacheside.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Module-level connection pool
_redis_client: Redis | None = None


def connect(url: str) -> Redis:
    """Open a client for one Redis endpoint.

    Entries are stored as raw bytes, so responses are never decoded.
    """
    return redis.from_url(url, decode_responses=False)  # type: ignore[no-untyped-call]


async def get_redis() -> Redis:
    """Get or create the default Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = connect(settings.redis_url)
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
