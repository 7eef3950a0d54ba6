"""Cache key schema and TTL presets.

Key format: {namespace}:{id}

Where:
- namespace: the cache's key prefix (e.g. "packed:caches:user-basic")
- id: the entity identifier

Auxiliary keys live under their own prefixes:
- "cache-lock:{key}" for refresh locks
- "tagset:{tag}" for tag index sets
"""

from __future__ import annotations

from typing import Any

from cacheside.config import settings


class CacheTTL:
    """TTL presets in seconds."""

    XS = 60
    SM = 60 * 3
    MD = 60 * 10
    LG = 60 * 30
    HOUR = 60 * 60
    DAY = 60 * 60 * 24
    WEEK = 60 * 60 * 24 * 7
    MONTH = 60 * 60 * 24 * 30


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    @classmethod
    def entity(cls, namespace: str, entity_id: Any) -> str:
        """Key for a single cached entity or counter."""
        return f"{namespace}:{entity_id}"

    @classmethod
    def lock(cls, key: str) -> str:
        """Key for the refresh lock guarding ``key``."""
        return f"{settings.lock_prefix}:{key}"

    @classmethod
    def tag_set(cls, tag: str) -> str:
        """Key for the set of cache keys grouped under ``tag``."""
        return f"{settings.tag_prefix}:{tag}"

    @classmethod
    def namespace_pattern(cls, namespace: str) -> str:
        """Pattern matching every entity key of a namespace.

        Use with Redis SCAN + DEL for bulk purges.
        """
        return f"{namespace}:*"

