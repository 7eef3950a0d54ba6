"""Single-key refresh-ahead cache with a distributed lock.

Used for one expensive computed value (an aggregate, a leaderboard) rather
than a batch of entities. Entries are stored for twice their TTL so an
expired value can still be served to callers that lose the refresh lock.

Example:
    totals = await fetch_through_cache(
        client,
        "packed:caches:buzz-totals",
        compute_totals,
        ttl=CacheTTL.SM,
    )

    # After a write: force a refresh without evicting the stale fallback
    await bust_fetch_through_cache(client, "packed:caches:buzz-totals")
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from cacheside.cache.codec import CacheEntry, EntryCodec, default_codec
from cacheside.cache.exceptions import CachePopulationError
from cacheside.cache.keys import CacheKeys, CacheTTL
from cacheside.observability.metrics import record_cache_hit, record_cache_miss

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LOCK_TTL = 10  # Seconds
DEFAULT_RETRY_COUNT = 3


async def fetch_through_cache(
    client: Redis,
    key: str,
    fetch_fn: Callable[[], Awaitable[T]],
    *,
    ttl: int = CacheTTL.SM,
    lock_ttl: int = DEFAULT_LOCK_TTL,
    retry_count: int = DEFAULT_RETRY_COUNT,
    codec: EntryCodec[T] | None = None,
) -> T:
    """Read ``key``, recomputing it under a lock once it is older than ``ttl``.

    Only the caller holding ``cache-lock:{key}`` runs ``fetch_fn``. Others get
    the stale value if one exists, otherwise they sleep ``lock_ttl / 2`` and
    try again, up to ``retry_count`` times.

    Raises:
        CachePopulationError: No value, no lock and no retries left.
    """
    entry_codec: EntryCodec[Any] = codec or default_codec
    lock_key = CacheKeys.lock(key)
    attempts = 0

    while True:
        attempts += 1
        entry = entry_codec.decode(await client.get(key))
        if entry is not None and not entry.has_payload:
            entry = None

        if entry is not None and time.time() - entry.cached_at <= ttl:
            record_cache_hit(key, "fetchThroughCache")
            return entry.payload

        if await client.set(lock_key, "1", nx=True, ex=lock_ttl):
            break

        if entry is not None:
            return entry.payload
        if retry_count <= 0:
            raise CachePopulationError(key, attempts)

        # Wait for the lock holder to finish
        await asyncio.sleep(lock_ttl / 2)
        retry_count -= 1

    record_cache_miss(key, "fetchThroughCache")
    try:
        data = await fetch_fn()
        await client.set(key, entry_codec.encode(CacheEntry.wrap(data)), ex=ttl * 2)
        return data
    finally:
        await client.delete(lock_key)


async def bust_fetch_through_cache(
    client: Redis,
    key: str,
    *,
    codec: EntryCodec[Any] | None = None,
) -> None:
    """Mark ``key`` expired while keeping its value and TTL as a stale fallback."""
    entry_codec = codec or default_codec
    entry = entry_codec.decode(await client.get(key))
    if entry is None or not entry.has_payload:
        return

    await client.set(
        key,
        entry_codec.encode(CacheEntry(payload=entry.payload, cached_at=0)),
        keepttl=True,
    )
    logger.debug(f"Busted fetch-through cache {key}")
