"""Integration test fixtures using Docker.

Provides a containerized Redis for testing the cache layer against a real server.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterator

import pytest
import pytest_asyncio

from tests.integration.docker_utils import DockerService, get_docker_client, run_container


@pytest.fixture(scope="session")
def docker_client():
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        client = get_docker_client()
        client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


@pytest.fixture(scope="session")
def redis_container(docker_client) -> Iterator[DockerService]:
    """Start Redis container for the test session."""
    ports = {"6379/tcp": None}
    with run_container(docker_client, "redis:7-alpine", ports=ports) as redis:
        yield redis


@pytest.fixture(scope="session")
def redis_base_url(redis_container: DockerService) -> str:
    """Get the Redis server URL for the test container, without a database."""
    return f"redis://{redis_container.address(6379)}"


@pytest.fixture(scope="session")
def redis_url(redis_base_url: str) -> str:
    return f"{redis_base_url}/0"


@pytest.fixture(scope="session")
def shard_urls(redis_base_url: str) -> list[str]:
    """Two logical databases standing in for separately sharded cache servers."""
    return [f"{redis_base_url}/1", f"{redis_base_url}/2"]


@pytest_asyncio.fixture
async def redis_client(redis_url: str):
    """Create a Redis client for tests."""
    import redis.asyncio as redis

    client = redis.from_url(redis_url)
    await _wait_for_redis(client)
    yield client
    await client.flushdb()  # Clean up after each test
    await client.aclose()


@pytest_asyncio.fixture
async def shard_clients(shard_urls: list[str]):
    """Clients for each shard database, flushed after the test."""
    import redis.asyncio as redis

    clients = [redis.from_url(url) for url in shard_urls]
    for client in clients:
        await _wait_for_redis(client)
    yield clients
    for client in clients:
        await client.flushdb()
        await client.aclose()


async def _wait_for_redis(client, timeout: float = 30.0) -> None:
    """Wait for Redis to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            await client.ping()
            return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)
