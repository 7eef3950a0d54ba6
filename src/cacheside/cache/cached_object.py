"""Keyed variant of the batch cache.

Same storage and invalidation as ``CachedArray``; ``fetch`` returns a dict
keyed by the stringified entity id instead of a list.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from cacheside.cache.cached_array import CachedArray, EntityId, as_id_list

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")


class CachedObject(Generic[T]):
    """Cache-aside loader returning ``{str(id): entity}``.

    Accepts the same keyword arguments as ``CachedArray``.
    """

    def __init__(self, client: Redis, **options: Any):
        self.array: CachedArray[T] = CachedArray(client, **options)
        self.id_key = self.array.id_key

    def _entity_id(self, entity: T) -> str:
        if isinstance(entity, Mapping):
            return str(entity[self.id_key])
        return str(getattr(entity, self.id_key))

    async def fetch(self, ids: EntityId | Iterable[EntityId]) -> dict[str, T]:
        results = await self.array.fetch(as_id_list(ids))
        return {self._entity_id(entity): entity for entity in results}

    async def bust(
        self,
        ids: EntityId | Iterable[EntityId],
        *,
        debounce_time: int | None = None,
    ) -> None:
        await self.array.bust(ids, debounce_time=debounce_time)

    async def invalidate(
        self,
        ids: EntityId | Iterable[EntityId],
        *,
        debounce_time: int | None = None,
    ) -> None:
        await self.array.invalidate(ids, debounce_time=debounce_time)

    async def refresh(self, ids: EntityId | Iterable[EntityId]) -> None:
        await self.array.refresh(ids)

    async def flush(self) -> list[str]:
        return await self.array.flush()
