"""Result cache for arbitrary backing-store queries.

Results are keyed by a hash of the query parameters, so each distinct
parameter set gets its own entry. Entries can be grouped under tags and
cleared together with ``bust_cache_tag``.

Example:
    leaderboard = QueryCache(client, "packed:caches:leaderboard", version="v2")

    rows = await leaderboard.run(load_leaderboard, "week", 50, ttl=CacheTTL.MD, tags="leaderboard")
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, TypeVar

import orjson

from cacheside.cache.codec import CacheEntry, EntryCodec, default_codec, json_default
from cacheside.cache.keys import CacheTTL
from cacheside.cache.tags import tag_cache_key
from cacheside.observability.metrics import record_cache_hit, record_cache_miss

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")


class QueryCache(Generic[T]):
    """Caches query results under ``{key}[:{version}]:{params hash}``.

    Args:
        client: Redis client
        key: Key namespace for this query family
        version: Bumped to orphan every entry when the result shape changes
        codec: Entry codec (defaults to plain JSON payloads)
    """

    cache_type = "queryCache"

    def __init__(
        self,
        client: Redis,
        key: str,
        version: str | None = None,
        *,
        codec: EntryCodec[T] | None = None,
    ):
        self.client = client
        self.key = key
        self.version = version
        self.codec: EntryCodec[Any] = codec or default_codec

    def cache_key(self, params: tuple[Any, ...]) -> str:
        encoded = orjson.dumps(params, default=json_default, option=orjson.OPT_SORT_KEYS)
        digest = hashlib.sha256(encoded).hexdigest()[:32]
        parts = [self.key, self.version, digest]
        return ":".join(part for part in parts if part)

    async def run(
        self,
        query_fn: Callable[..., Awaitable[T]],
        *params: Any,
        ttl: int = CacheTTL.XS,
        tags: str | Iterable[str] | None = None,
    ) -> T:
        """Return the cached result for ``params``, running ``query_fn`` on a miss.

        A ``ttl`` of 0 bypasses the cache entirely.
        """
        if ttl == 0:
            return await query_fn(*params)

        key = self.cache_key(params)
        entry = self.codec.decode(await self.client.get(key))
        if entry is not None and entry.has_payload:
            record_cache_hit(self.key, self.cache_type)
            return entry.payload

        record_cache_miss(self.key, self.cache_type)
        result = await query_fn(*params)
        await self.client.set(key, self.codec.encode(CacheEntry.wrap(result)), ex=ttl)

        if tags:
            await tag_cache_key(self.client, key, tags)
        return result
