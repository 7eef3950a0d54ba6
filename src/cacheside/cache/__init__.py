"""Cache layer for cacheside.

Provides Redis caching with the cache-aside pattern:
- Batch entity caches with debounced invalidation and not-found markers
- Lazily populated counters
- Single-key refresh-ahead caching behind a distributed lock
- Tag-based grouped invalidation and pattern purges across endpoints
"""

from cacheside.cache.cached_array import CachedArray
from cacheside.cache.cached_object import CachedObject
from cacheside.cache.codec import CacheEntry, EntryCodec
from cacheside.cache.counter import CachedCounter
from cacheside.cache.exceptions import CacheError, CachePopulationError
from cacheside.cache.fetch_through import bust_fetch_through_cache, fetch_through_cache
from cacheside.cache.keys import CacheKeys, CacheTTL
from cacheside.cache.purge import clear_cache_by_pattern, fetch_cache_by_pattern
from cacheside.cache.query import QueryCache
from cacheside.cache.redis import close_redis, get_redis
from cacheside.cache.tags import bust_cache_tag, tag_cache_key

__all__ = [
    # Core cache
    "CacheKeys",
    "CacheTTL",
    "CacheEntry",
    "EntryCodec",
    "get_redis",
    "close_redis",
    # Entity caches
    "CachedArray",
    "CachedObject",
    "CachedCounter",
    "QueryCache",
    # Single-key cache
    "fetch_through_cache",
    "bust_fetch_through_cache",
    # Invalidation
    "tag_cache_key",
    "bust_cache_tag",
    "clear_cache_by_pattern",
    "fetch_cache_by_pattern",
    # Errors
    "CacheError",
    "CachePopulationError",
]
