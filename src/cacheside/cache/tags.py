"""Tag index for grouped invalidation.

A tag is a Redis set at ``tagset:{tag}`` whose members are cache keys.
Busting a tag deletes every member key and then the set itself. This is not
atomic: a reader may repopulate a member between its deletion and the set
deletion, costing one extra stale read cycle at worst.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Awaitable, cast

from cacheside.cache.keys import CacheKeys

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def _as_list(tag: str | Iterable[str]) -> list[str]:
    return [tag] if isinstance(tag, str) else list(tag)


async def tag_cache_key(client: Redis, key: str, tag: str | Iterable[str]) -> None:
    """Add ``key`` to the index of every given tag. Tag sets never expire."""
    for name in _as_list(tag):
        await cast(Awaitable[int], client.sadd(CacheKeys.tag_set(name), key))


async def bust_cache_tag(client: Redis, tag: str | Iterable[str]) -> int:
    """Delete every key indexed under the given tag(s), then the tag sets.

    Returns the number of member keys deleted.
    """
    deleted = 0
    for name in _as_list(tag):
        tag_key = CacheKeys.tag_set(name)
        members = await cast(Awaitable[set[bytes]], client.smembers(tag_key))
        for member in members:
            deleted += await client.delete(member)
        await client.delete(tag_key)
        logger.debug(f"Busted tag {name}: {len(members)} keys")
    return deleted
