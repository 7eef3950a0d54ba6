"""Cache entry wire format.

Every value stored by the batch and fetch-through caches is wrapped in a
``CacheEntry`` and serialized with orjson:

    {"payload": <value>, "cachedAt": 1767225600.5}
    {"cachedAt": 1767225600.5, "notFound": true}
    {"cachedAt": 1767225600.5, "debounce": true}

Decoding is lenient: anything missing or malformed decodes to None and is
treated as a cache miss by callers.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

import orjson
from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """The unit stored per cache key."""

    payload: T | None = None
    cached_at: float = 0.0
    not_found: bool = False
    debounce: bool = False

    @property
    def has_payload(self) -> bool:
        """True for entries carrying real data rather than a marker."""
        return not (self.not_found or self.debounce)

    @classmethod
    def wrap(cls, payload: T, cached_at: float | None = None) -> CacheEntry[T]:
        return cls(payload=payload, cached_at=time.time() if cached_at is None else cached_at)

    @classmethod
    def not_found_marker(cls, cached_at: float | None = None) -> CacheEntry[T]:
        return cls(cached_at=time.time() if cached_at is None else cached_at, not_found=True)

    @classmethod
    def debounce_marker(cls, cached_at: float | None = None) -> CacheEntry[T]:
        return cls(cached_at=time.time() if cached_at is None else cached_at, debounce=True)


def json_default(obj: Any) -> Any:
    """orjson fallback for types it does not serialize natively."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Type is not cacheable: {type(obj).__name__}")


class EntryCodec(Generic[T]):
    """Encodes and decodes ``CacheEntry`` values.

    Args:
        decode_payload: Optional callable turning the decoded JSON payload back
            into ``T`` (e.g. ``MyModel.model_validate``). Payloads failing it
            decode as a miss.
    """

    def __init__(self, decode_payload: Callable[[Any], T] | None = None):
        self._decode_payload = decode_payload

    def encode(self, entry: CacheEntry[T]) -> bytes:
        data: dict[str, Any] = {"cachedAt": entry.cached_at}
        if entry.not_found:
            data["notFound"] = True
        elif entry.debounce:
            data["debounce"] = True
        else:
            data["payload"] = entry.payload
        return orjson.dumps(data, default=json_default)

    def decode(self, raw: bytes | str | None) -> CacheEntry[T] | None:
        if raw is None:
            return None

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.debug("Discarding undecodable cache entry")
            return None

        if not isinstance(data, dict):
            return None

        cached_at = data.get("cachedAt")
        if isinstance(cached_at, bool) or not isinstance(cached_at, (int, float)):
            return None

        if data.get("notFound"):
            return CacheEntry(cached_at=float(cached_at), not_found=True)
        if data.get("debounce"):
            return CacheEntry(cached_at=float(cached_at), debounce=True)
        if "payload" not in data:
            return None

        payload = data["payload"]
        if self._decode_payload is not None:
            try:
                payload = self._decode_payload(payload)
            except (TypeError, ValueError) as e:
                logger.debug(f"Discarding cache entry with invalid payload: {e}")
                return None

        return CacheEntry(payload=payload, cached_at=float(cached_at))


# Shared codec for plain JSON payloads
default_codec: EntryCodec[Any] = EntryCodec()
