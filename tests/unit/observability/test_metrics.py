"""Tests for cache metrics."""

from __future__ import annotations

from prometheus_client import REGISTRY

from cacheside.config import settings
from cacheside.observability.metrics import (
    MetricsRegistry,
    get_metrics,
    record_cache_hit,
    record_cache_miss,
    record_cache_revalidate,
)

LABELS = {"cache_name": "test:metrics", "cache_type": "cachedArray"}


def _value(name: str) -> float:
    return REGISTRY.get_sample_value(name, LABELS) or 0.0


class TestCacheMetrics:
    """Tests for the cache counters."""

    def test_hits_and_misses(self) -> None:
        get_metrics()
        hits = _value("cacheside_cache_hits_total")
        misses = _value("cacheside_cache_misses_total")

        record_cache_hit("test:metrics", "cachedArray", 3)
        record_cache_miss("test:metrics", "cachedArray")

        assert _value("cacheside_cache_hits_total") == hits + 3
        assert _value("cacheside_cache_misses_total") == misses + 1

    def test_revalidations(self) -> None:
        get_metrics()
        before = _value("cacheside_cache_revalidations_total")

        record_cache_revalidate("test:metrics", "cachedArray", 2)

        assert _value("cacheside_cache_revalidations_total") == before + 2

    def test_zero_count_is_ignored(self) -> None:
        get_metrics()
        before = _value("cacheside_cache_hits_total")

        record_cache_hit("test:metrics", "cachedArray", 0)

        assert _value("cacheside_cache_hits_total") == before

    def test_exposition(self) -> None:
        record_cache_hit("test:metrics", "cachedArray")

        assert b"cacheside_cache_hits_total" in get_metrics().generate_latest()


class TestDisabledMetrics:
    """Tests for metrics switched off by configuration."""

    def test_disabled_registry(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "enable_metrics", False)
        registry = MetricsRegistry()

        registry.initialize()

        assert registry.cache_hits_total is None
        assert registry.generate_latest() == b"# Metrics disabled\n"
