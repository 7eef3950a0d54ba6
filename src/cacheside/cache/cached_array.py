"""Batch cache-aside loader for entities looked up by id.

Each id maps to one key, ``{key}:{id}``, holding a ``CacheEntry``:

- a payload: served without touching the backing store
- a not-found marker: the id is skipped until the marker expires
- a debounce marker: written by ``bust``; the id is reloaded from the
  backing store, and while the marker is younger than ``debounce_time`` the
  reloaded value is served but not written back. A read-replica may not see
  the write that caused the bust yet, and caching its answer would re-poison
  the cache.

Example:
    users = CachedArray(
        client,
        key="packed:caches:user-basic",
        id_key="id",
        lookup_fn=load_users,
        ttl=CacheTTL.MD,
    )

    found = await users.fetch([1, 2, 3])
    await users.bust(2)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, TypeVar, Union

from cacheside.cache.codec import CacheEntry, EntryCodec, default_codec
from cacheside.cache.keys import CacheKeys, CacheTTL
from cacheside.cache.purge import purge_keys
from cacheside.config import settings
from cacheside.observability.metrics import (
    record_cache_hit,
    record_cache_miss,
    record_cache_revalidate,
)

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")
ItemT = TypeVar("ItemT")

EntityId = Union[int, str]

# Called as lookup_fn(ids) on reads and lookup_fn(ids, True) on refresh
LookupFn = Callable[..., Awaitable[Mapping[Any, T]]]
AppendFn = Callable[[list[T]], Awaitable[None]]
DontCacheFn = Callable[[T], bool]

DEFAULT_DEBOUNCE_TIME = 10  # Seconds
REVALIDATE_LOCK_TTL = 10  # Seconds


def chunked(items: Sequence[ItemT], size: int) -> Iterator[Sequence[ItemT]]:
    """Yield consecutive slices of at most ``size`` items."""
    for start in range(0, len(items), size):
        yield items[start : start + size]


def as_id_list(ids: EntityId | Iterable[EntityId]) -> list[EntityId]:
    """Normalize a single id or an iterable of ids to a deduplicated list.

    Ids are compared by their string form, matching how they key the store,
    so ``7`` and ``"7"`` collapse to the first one seen.
    """
    if isinstance(ids, (int, str)):
        return [ids]
    unique: dict[str, EntityId] = {}
    for entity_id in ids:
        unique.setdefault(str(entity_id), entity_id)
    return list(unique.values())


class CachedArray(Generic[T]):
    """Cache-aside loader returning a list of entities for a list of ids.

    Args:
        client: Redis client
        key: Key namespace prefix
        id_key: Identity field of ``T``
        lookup_fn: Async batch loader returning a mapping of found ids to
            entities; called with ``from_write=True`` by ``refresh``
        append_fn: Async hook run once per ``fetch`` on the full result list
        ttl: Entry expiry in seconds
        debounce_time: Protection window after ``bust`` in seconds
        cache_not_found: Cache a marker for ids the backing store lacks
        dont_cache_fn: Veto for writing back a specific fetched entity
        stale_while_revalidate: Keep entries for ``2 * ttl`` and serve stale
            ones while a single caller refreshes them
        codec: Entry codec (defaults to plain JSON payloads)
        lookup_chunk_size: Max ids per ``lookup_fn`` call
    """

    cache_type = "cachedArray"

    def __init__(
        self,
        client: Redis,
        *,
        key: str,
        id_key: str,
        lookup_fn: LookupFn[T],
        append_fn: AppendFn[T] | None = None,
        ttl: int = CacheTTL.XS,
        debounce_time: int = DEFAULT_DEBOUNCE_TIME,
        cache_not_found: bool = True,
        dont_cache_fn: DontCacheFn[T] | None = None,
        stale_while_revalidate: bool = False,
        codec: EntryCodec[T] | None = None,
        lookup_chunk_size: int | None = None,
    ):
        self.client = client
        self.key = key
        self.id_key = id_key
        self.lookup_fn = lookup_fn
        self.append_fn = append_fn
        self.ttl = ttl
        self.debounce_time = debounce_time
        self.cache_not_found = cache_not_found
        self.dont_cache_fn = dont_cache_fn
        self.stale_while_revalidate = stale_while_revalidate
        self.codec: EntryCodec[Any] = codec or default_codec
        self.lookup_chunk_size = lookup_chunk_size or settings.lookup_chunk_size

    @property
    def write_ttl(self) -> int:
        """Expiry used when writing entries."""
        return self.ttl * 2 if self.stale_while_revalidate else self.ttl

    def _key(self, entity_id: EntityId) -> str:
        return CacheKeys.entity(self.key, entity_id)

    async def _read_entries(self, ids: Sequence[EntityId]) -> dict[str, CacheEntry[T]]:
        """Multi-get entries, bounding each round-trip to the store chunk size."""
        entries: dict[str, CacheEntry[T]] = {}
        for batch in chunked(ids, settings.store_chunk_size):
            values = await self.client.mget([self._key(entity_id) for entity_id in batch])
            for entity_id, raw in zip(batch, values):
                entry = self.codec.decode(raw)
                if entry is not None:
                    entries[str(entity_id)] = entry
        return entries

    async def _lookup(self, ids: Sequence[EntityId], from_write: bool = False) -> dict[str, T]:
        """Query the backing store in chunks, keyed by stringified id."""
        found: dict[str, T] = {}
        for batch in chunked(ids, self.lookup_chunk_size):
            if from_write:
                batch_results = await self.lookup_fn(list(batch), True)
            else:
                batch_results = await self.lookup_fn(list(batch))
            for entity_id, entity in batch_results.items():
                if entity is not None:
                    found[str(entity_id)] = entity
        return found

    async def fetch(self, ids: Iterable[EntityId]) -> list[T]:
        """Load entities for ``ids``, from the cache where possible.

        Ids the backing store lacks are omitted. Order is not guaranteed.
        """
        unique_ids = as_id_list(ids)
        if not unique_ids:
            return []

        entries = await self._read_entries(unique_ids)
        now = time.time()
        debounce_cutoff = now - self.debounce_time
        stale_cutoff = now - self.ttl

        results: list[T] = []
        misses: list[EntityId] = []
        dont_cache: set[str] = set()
        stale: list[tuple[EntityId, T]] = []
        hits = 0

        for entity_id in unique_ids:
            entry = entries.get(str(entity_id))
            if entry is None:
                misses.append(entity_id)
                continue
            if entry.not_found:
                continue
            if entry.debounce:
                if entry.cached_at > debounce_cutoff:
                    dont_cache.add(str(entity_id))
                misses.append(entity_id)
                continue
            if self.stale_while_revalidate and entry.cached_at < stale_cutoff:
                stale.append((entity_id, entry.payload))
                continue
            results.append(entry.payload)
            hits += 1

        record_cache_hit(self.key, self.cache_type, hits)

        locks: list[str] = []
        if stale:
            record_cache_revalidate(self.key, self.cache_type, len(stale))
            async with self.client.pipeline(transaction=False) as pipe:
                for entity_id, _ in stale:
                    lock_key = CacheKeys.lock(self._key(entity_id))
                    pipe.set(lock_key, "1", nx=True, ex=REVALIDATE_LOCK_TTL)
                acquired = await pipe.execute()

            for (entity_id, payload), got_lock in zip(stale, acquired):
                if got_lock:
                    misses.append(entity_id)
                    locks.append(CacheKeys.lock(self._key(entity_id)))
                else:
                    # Another caller is refreshing it
                    results.append(payload)

        if dont_cache:
            logger.debug(
                f"{self.key}: Cache debounce - {len(dont_cache)} items: {', '.join(dont_cache)}"
            )

        try:
            if misses:
                await self._load_misses(misses, dont_cache, results)
        finally:
            if locks:
                await self.client.delete(*locks)

        if self.append_fn is not None:
            await self.append_fn(results)

        return results

    async def _load_misses(
        self,
        misses: list[EntityId],
        dont_cache: set[str],
        results: list[T],
    ) -> None:
        """Load ``misses`` from the backing store and write them back."""
        logger.debug(
            f"{self.key}: Cache miss - {len(misses)} items: {', '.join(map(str, misses))}"
        )

        found = await self._lookup(misses)
        cached_at = time.time()
        to_cache: dict[str, bytes] = {}
        to_cache_not_found: dict[str, bytes] = {}
        actual_misses = 0

        for entity_id in misses:
            entity = found.get(str(entity_id))
            if entity is None:
                if self.cache_not_found:
                    to_cache_not_found[self._key(entity_id)] = self.codec.encode(
                        CacheEntry.not_found_marker(cached_at)
                    )
                    actual_misses += 1
                continue

            results.append(entity)
            actual_misses += 1
            if str(entity_id) in dont_cache:
                continue
            if self.dont_cache_fn is not None and self.dont_cache_fn(entity):
                continue
            to_cache[self._key(entity_id)] = self.codec.encode(CacheEntry.wrap(entity, cached_at))

        record_cache_miss(self.key, self.cache_type, actual_misses)

        if not to_cache and not to_cache_not_found:
            return

        async with self.client.pipeline(transaction=False) as pipe:
            for key, value in to_cache.items():
                pipe.set(key, value, ex=self.write_ttl)
            # NX: a not-found must never replace a concurrent write or a debounce marker
            for key, value in to_cache_not_found.items():
                pipe.set(key, value, ex=self.write_ttl, nx=True)
            await pipe.execute()

    async def bust(
        self,
        ids: EntityId | Iterable[EntityId],
        *,
        debounce_time: int | None = None,
    ) -> None:
        """Replace entries with debounce markers expiring after ``debounce_time``."""
        id_list = as_id_list(ids)
        if not id_list:
            return

        expiry = self.debounce_time if debounce_time is None else debounce_time
        marker = self.codec.encode(CacheEntry.debounce_marker())
        async with self.client.pipeline(transaction=False) as pipe:
            for entity_id in id_list:
                pipe.set(self._key(entity_id), marker, ex=expiry)
            await pipe.execute()

        logger.debug(f"Busted {len(id_list)} {self.key} items: {', '.join(map(str, id_list))}")

    async def invalidate(
        self,
        ids: EntityId | Iterable[EntityId],
        *,
        debounce_time: int | None = None,
    ) -> None:
        """Age cached entries so they turn stale after ``debounce_time``.

        The old payload keeps being served until then, and afterwards until a
        revalidating caller replaces it. Meant for ``stale_while_revalidate``
        caches, where it avoids the backing-store load a ``bust`` causes.
        """
        id_list = as_id_list(ids)
        if not id_list:
            return

        window = self.debounce_time if debounce_time is None else debounce_time
        invalid_at = time.time() - self.ttl + window
        entries = await self._read_entries(id_list)

        updates: dict[str, bytes] = {}
        for entity_id in id_list:
            entry = entries.get(str(entity_id))
            if entry is None or not entry.has_payload:
                continue
            updates[self._key(entity_id)] = self.codec.encode(
                CacheEntry(payload=entry.payload, cached_at=invalid_at)
            )

        if not updates:
            return

        async with self.client.pipeline(transaction=False) as pipe:
            for key, value in updates.items():
                pipe.set(key, value, ex=self.ttl * 2)
            await pipe.execute()

        logger.debug(f"Invalidated {len(updates)} {self.key} items")

    async def refresh(self, ids: EntityId | Iterable[EntityId]) -> None:
        """Reload ``ids`` from the primary and overwrite their entries.

        Ids the backing store no longer has are deleted from the cache.
        """
        id_list = as_id_list(ids)
        if not id_list:
            return

        found = await self._lookup(id_list, from_write=True)
        cached_at = time.time()
        removed = [entity_id for entity_id in id_list if str(entity_id) not in found]

        async with self.client.pipeline(transaction=False) as pipe:
            for entity_id, entity in found.items():
                pipe.set(
                    self._key(entity_id),
                    self.codec.encode(CacheEntry.wrap(entity, cached_at)),
                    ex=self.write_ttl,
                )
            for entity_id in removed:
                pipe.delete(self._key(entity_id))
            await pipe.execute()

        logger.debug(f"Refreshed {len(found)} {self.key} items, removed {len(removed)}")

    async def flush(self) -> list[str]:
        """Delete every entry of this cache. Returns the deleted keys."""
        return await purge_keys(self.client, CacheKeys.namespace_pattern(self.key))
