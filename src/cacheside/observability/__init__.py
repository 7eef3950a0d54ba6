"""Observability module for cacheside.

Provides metrics and structured logging:
- Prometheus cache hit/miss/revalidation counters
- JSON structured logging with correlation IDs
"""

from cacheside.observability.logging import (
    LogContext,
    configure_logging,
    correlation_id_var,
)
from cacheside.observability.metrics import (
    get_metrics,
    metrics_registry,
    record_cache_hit,
    record_cache_miss,
    record_cache_revalidate,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "correlation_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "record_cache_hit",
    "record_cache_miss",
    "record_cache_revalidate",
]
