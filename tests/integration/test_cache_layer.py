"""Integration tests for the cache layer against a real Redis server."""

from __future__ import annotations

import asyncio

import pytest
from redis.asyncio import Redis

from cacheside.cache import (
    CachedArray,
    CachedCounter,
    QueryCache,
    bust_cache_tag,
    bust_fetch_through_cache,
    clear_cache_by_pattern,
    fetch_cache_by_pattern,
    fetch_through_cache,
    tag_cache_key,
)
from cacheside.cache.codec import default_codec
from cacheside.cache.keys import CacheKeys

pytestmark = pytest.mark.integration

USERS = {
    1: {"id": 1, "username": "ada"},
    2: {"id": 2, "username": "bo"},
}


class UserStore:
    def __init__(self) -> None:
        self.rows = dict(USERS)
        self.calls: list[list[int]] = []

    async def __call__(self, ids, from_write=False):
        self.calls.append(list(ids))
        return {entity_id: self.rows[entity_id] for entity_id in ids if entity_id in self.rows}


class TestCachedArray:
    """CachedArray against real Redis."""

    @pytest.mark.asyncio
    async def test_fetch_caches_found_and_missing(self, redis_client: Redis) -> None:
        store = UserStore()
        users = CachedArray(redis_client, key="it:user", id_key="id", lookup_fn=store, ttl=30)

        first = await users.fetch([1, 2, 3])
        second = await users.fetch([1, 2, 3])

        assert sorted(row["id"] for row in first) == [1, 2]
        assert sorted(row["id"] for row in second) == [1, 2]
        assert store.calls == [[1, 2, 3]]
        assert 0 < await redis_client.ttl("it:user:1") <= 30

    @pytest.mark.asyncio
    async def test_bust_debounces_then_recaches(self, redis_client: Redis) -> None:
        store = UserStore()
        users = CachedArray(
            redis_client, key="it:user", id_key="id", lookup_fn=store, debounce_time=1
        )
        await users.fetch([1])
        await users.bust(1)
        store.rows[1] = {"id": 1, "username": "ada-renamed"}

        assert await users.fetch([1]) == [{"id": 1, "username": "ada-renamed"}]
        assert default_codec.decode(await redis_client.get("it:user:1")).debounce

        await asyncio.sleep(1.2)
        await users.fetch([1])
        await users.fetch([1])

        assert len(store.calls) == 3
        assert default_codec.decode(await redis_client.get("it:user:1")).has_payload

    @pytest.mark.asyncio
    async def test_refresh_and_flush(self, redis_client: Redis) -> None:
        store = UserStore()
        users = CachedArray(redis_client, key="it:user", id_key="id", lookup_fn=store)
        await users.fetch([1, 2])
        del store.rows[2]

        await users.refresh([1, 2])

        assert await redis_client.get("it:user:2") is None
        assert await users.flush() == ["it:user:1"]


class TestFetchThrough:
    """fetch_through_cache against real Redis."""

    @pytest.mark.asyncio
    async def test_single_flight(self, redis_client: Redis) -> None:
        runs = 0

        async def compute():
            nonlocal runs
            runs += 1
            await asyncio.sleep(0.1)
            return {"total": 42}

        results = await asyncio.gather(
            *(fetch_through_cache(redis_client, "it:totals", compute, lock_ttl=1) for _ in range(4))
        )

        assert runs == 1
        assert results == [{"total": 42}] * 4
        assert await redis_client.exists(CacheKeys.lock("it:totals")) == 0

    @pytest.mark.asyncio
    async def test_bust_keeps_ttl(self, redis_client: Redis) -> None:
        async def compute():
            return [1, 2, 3]

        await fetch_through_cache(redis_client, "it:totals", compute, ttl=60)
        await bust_fetch_through_cache(redis_client, "it:totals")

        entry = default_codec.decode(await redis_client.get("it:totals"))
        assert entry.cached_at == 0
        assert entry.payload == [1, 2, 3]
        assert 60 < await redis_client.ttl("it:totals") <= 120


class TestCountersAndTags:
    """CachedCounter, QueryCache and tags against real Redis."""

    @pytest.mark.asyncio
    async def test_counter(self, redis_client: Redis) -> None:
        async def fetch(entity_id):
            return 10

        likes = CachedCounter(redis_client, "it:likes", fetch)

        assert await likes.increment_by(7, 2) == 12
        assert await likes.get(7) == 12
        await likes.clear(7)
        assert await redis_client.get("it:likes:7") is None

    @pytest.mark.asyncio
    async def test_tagged_query_results(self, redis_client: Redis) -> None:
        async def query(period):
            return {"period": period}

        cache = QueryCache(redis_client, "it:query")
        await cache.run(query, "week", tags="boards")
        await tag_cache_key(redis_client, "it:other", "boards")
        await redis_client.set("it:other", b"x")

        assert await bust_cache_tag(redis_client, "boards") == 2
        assert await redis_client.keys("it:*") == []


class TestPatternPurge:
    """clear_cache_by_pattern across several endpoints."""

    @pytest.mark.asyncio
    async def test_clears_every_shard(self, shard_clients, shard_urls) -> None:
        first, second = shard_clients
        for i in range(25):
            await first.set(f"it:user:{i}", b"v")
        await second.set("it:user:100", b"v")
        await second.set("it:model:1", b"v")

        found = await fetch_cache_by_pattern("it:user:*", urls=shard_urls)
        cleared = await clear_cache_by_pattern("it:user:*", urls=shard_urls)

        assert len(found) == 26
        assert sorted(cleared) == sorted(found)
        assert await first.dbsize() == 0
        assert await second.keys("*") == [b"it:model:1"]
