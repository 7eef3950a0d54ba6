"""Lazily populated per-id integer counters.

A stored zero is indistinguishable from a missing key: both fall through to
``fetch_fn``. ``increment_by`` returns the value read before the INCRBY plus
the amount, which can diverge from the store under concurrent increments.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Generic, TypeVar

from cacheside.cache.keys import CacheKeys, CacheTTL
from cacheside.observability.metrics import record_cache_hit, record_cache_miss

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

IdT = TypeVar("IdT", int, str)

CounterFetch = Callable[[IdT], Awaitable[int]]


class CachedCounter(Generic[IdT]):
    """Counters stored as plain integers at ``{root_key}:{id}``.

    Args:
        client: Redis client
        root_key: Key namespace for this counter family
        fetch_fn: Loads the authoritative count for an id (defaults to 0)
        ttl: Expiry for populated counters (default one hour)
    """

    def __init__(
        self,
        client: Redis,
        root_key: str,
        fetch_fn: CounterFetch[IdT] | None = None,
        *,
        ttl: int = CacheTTL.HOUR,
    ):
        self.client = client
        self.root_key = root_key
        self.fetch_fn = fetch_fn
        self.ttl = ttl

    def _key(self, entity_id: IdT) -> str:
        return CacheKeys.entity(self.root_key, entity_id)

    async def get(self, entity_id: IdT) -> int:
        key = self._key(entity_id)
        cached = int(await self.client.get(key) or 0)
        if cached:
            record_cache_hit(self.root_key, "cachedCounter")
            return cached

        record_cache_miss(self.root_key, "cachedCounter")
        count = await self.fetch_fn(entity_id) if self.fetch_fn else 0
        await self.client.set(key, count, ex=self.ttl)
        logger.debug(f"{self.root_key}: populated counter {entity_id} = {count}")
        return count

    async def increment_by(self, entity_id: IdT, amount: int = 1) -> int:
        count = await self.get(entity_id)
        await self.client.incrby(self._key(entity_id), amount)
        return count + amount

    async def clear(self, entity_id: IdT) -> None:
        await self.client.delete(self._key(entity_id))
