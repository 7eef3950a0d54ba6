"""Fixtures for cache unit tests."""

from __future__ import annotations

import time

import pytest

from tests.unit.cache.fakes import FakeClock, FakeRedis


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze ``time.time`` for both the cache layer and the fake store."""
    fake_clock = FakeClock()
    monkeypatch.setattr(time, "time", fake_clock)
    return fake_clock


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Empty in-memory Redis."""
    return FakeRedis()
