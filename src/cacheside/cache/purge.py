"""Bulk key deletion by glob pattern.

Keyspaces may be sharded across several physical Redis servers, so the
module-level entry points visit every configured endpoint concurrently.
SCAN may return the same key more than once; a per-endpoint dedup set keeps
each key to a single DEL.

Example:
    cleared = await clear_cache_by_pattern("packed:caches:user-basic:*")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, TypeVar

from cacheside.cache.redis import connect as connect_redis
from cacheside.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

R = TypeVar("R")

Connector = Callable[[str], "Redis"]


def _key_str(key: bytes | str) -> str:
    return key.decode() if isinstance(key, bytes) else key


async def scan_keys(client: Redis, pattern: str, count: int | None = None) -> list[str]:
    """List every key matching ``pattern`` on one endpoint, deduplicated."""
    found: dict[str, None] = {}
    async for key in client.scan_iter(match=pattern, count=count or settings.scan_count):
        found.setdefault(_key_str(key))
    return list(found)


async def purge_keys(
    client: Redis,
    pattern: str,
    *,
    count: int | None = None,
    batch_size: int | None = None,
) -> list[str]:
    """Delete every key matching ``pattern`` on one endpoint.

    Keys are deleted in batches as the scan accumulates them, so memory
    stays bounded by the batch size plus the dedup set.
    Each batch is a single multi-key DEL, which assumes a standalone endpoint:
    a Redis Cluster node rejects batches spanning hash slots (CROSSSLOT).

    Returns:
        Names of the deleted keys.
    """
    count = count or settings.scan_count
    batch_size = batch_size or settings.purge_batch_size
    seen: set[str] = set()
    pending: list[str] = []
    cleared: list[str] = []
    cursor = 0

    logger.debug(f"Scanning cache with pattern: {pattern}")
    while True:
        cursor, keys = await client.scan(cursor=cursor, match=pattern, count=count)
        for raw_key in keys:
            key = _key_str(raw_key)
            if key in seen:
                continue
            seen.add(key)
            pending.append(key)

        while len(pending) >= batch_size:
            batch, pending = pending[:batch_size], pending[batch_size:]
            await client.delete(*batch)
            cleared.extend(batch)
            logger.debug(f"Cleared batch of {len(batch)} keys, total {len(cleared)}")

        if cursor == 0:
            break

    if pending:
        await client.delete(*pending)
        cleared.extend(pending)

    return cleared


async def _on_each_endpoint(
    urls: Iterable[str],
    connect: Connector,
    work: Callable[[Redis], Awaitable[R]],
) -> list[R]:
    """Run ``work`` against a fresh connection to every endpoint concurrently.

    Every endpoint runs to completion and is closed before the first error,
    if any, is raised.
    """

    async def run(url: str) -> R:
        client = connect(url)
        try:
            return await work(client)
        finally:
            await client.aclose()

    outcomes = await asyncio.gather(*(run(url) for url in urls), return_exceptions=True)

    results: list[R] = []
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
        results.append(outcome)
    return results


async def clear_cache_by_pattern(
    pattern: str,
    *,
    urls: Iterable[str] | None = None,
    connect: Connector | None = None,
) -> list[str]:
    """Delete all keys matching ``pattern`` on every cache endpoint.

    Args:
        pattern: Redis glob pattern (e.g. "packed:caches:user:*")
        urls: Endpoints to purge (defaults to the configured endpoints)
        connect: Client factory, one call per endpoint

    Returns:
        Names of the deleted keys. Empty when no endpoints are configured.
    """
    endpoints = settings.cache_endpoint_urls if urls is None else list(urls)
    if not endpoints:
        logger.info(f"No cache endpoints configured, nothing to clear for {pattern}")
        return []

    per_endpoint = await _on_each_endpoint(
        endpoints,
        connect or connect_redis,
        lambda client: purge_keys(client, pattern),
    )
    cleared = list(dict.fromkeys(key for keys in per_endpoint for key in keys))

    logger.info(
        f"Done clearing cache for {pattern}: {len(cleared)} keys on {len(endpoints)} endpoints"
    )
    return cleared


async def fetch_cache_by_pattern(
    pattern: str,
    *,
    urls: Iterable[str] | None = None,
    connect: Connector | None = None,
) -> list[str]:
    """List keys matching ``pattern`` on every cache endpoint without deleting."""
    endpoints = settings.cache_endpoint_urls if urls is None else list(urls)
    if not endpoints:
        return []

    per_endpoint = await _on_each_endpoint(
        endpoints,
        connect or connect_redis,
        lambda client: scan_keys(client, pattern),
    )
    found = list(dict.fromkeys(key for keys in per_endpoint for key in keys))
    logger.debug(f"Found {len(found)} keys for {pattern}")
    return found
