"""Prometheus metrics for cacheside.

Provides cache effectiveness counters, labelled by cache name and type:
- hits: ids served straight from the store
- misses: ids that went through to the backing store
- revalidations: stale entries picked for background refresh

Usage:
    from cacheside.observability.metrics import record_cache_hit

    record_cache_hit("packed:caches:user-basic", "cachedArray", 12)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from cacheside.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_revalidations_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        from prometheus_client import REGISTRY, Counter

        self._registry = REGISTRY

        self.cache_hits_total = Counter(
            "cacheside_cache_hits_total",
            "Cache hits",
            ["cache_name", "cache_type"],
        )

        self.cache_misses_total = Counter(
            "cacheside_cache_misses_total",
            "Cache misses",
            ["cache_name", "cache_type"],
        )

        self.cache_revalidations_total = Counter(
            "cacheside_cache_revalidations_total",
            "Stale cache entries scheduled for revalidation",
            ["cache_name", "cache_type"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not settings.enable_metrics or self._registry is None:
            return b"# Metrics disabled\n"

        from prometheus_client import generate_latest

        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_cache_hit(cache_name: str, cache_type: str, count: int = 1) -> None:
    metrics = get_metrics()
    if metrics.cache_hits_total and count > 0:
        metrics.cache_hits_total.labels(cache_name=cache_name, cache_type=cache_type).inc(count)


def record_cache_miss(cache_name: str, cache_type: str, count: int = 1) -> None:
    metrics = get_metrics()
    if metrics.cache_misses_total and count > 0:
        metrics.cache_misses_total.labels(cache_name=cache_name, cache_type=cache_type).inc(count)


def record_cache_revalidate(cache_name: str, cache_type: str, count: int = 1) -> None:
    metrics = get_metrics()
    if metrics.cache_revalidations_total and count > 0:
        metrics.cache_revalidations_total.labels(
            cache_name=cache_name,
            cache_type=cache_type,
        ).inc(count)
