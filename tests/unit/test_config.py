"""Tests for environment-driven settings."""

from __future__ import annotations

from cacheside.config import Settings


class TestCacheEndpoints:
    """Tests for cache endpoint resolution."""

    def test_endpoints_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("CACHE_ENDPOINTS", "redis://c1:6379/0, redis://c2:6379/0,")

        settings = Settings(_env_file=None)

        assert settings.cache_endpoint_urls == ["redis://c1:6379/0", "redis://c2:6379/0"]

    def test_falls_back_to_redis_url(self, monkeypatch) -> None:
        monkeypatch.delenv("CACHE_ENDPOINTS", raising=False)
        monkeypatch.setenv("REDIS_URL", "redis://primary:6379/3")

        settings = Settings(_env_file=None)

        assert settings.cache_endpoint_urls == ["redis://primary:6379/3"]
