"""
Pytest Configuration and Fixtures for Rankboard Tests
=====================================================

Purpose
-------
Centralized fixtures for the Rankboard test suite: in-memory stores for unit
tests, a Redis testcontainer for integration tests, and mocks for the Redis
client.

Responsibilities
----------------
- Force a quiet, file-less test environment before Rankboard is imported
- Reset ConfigManager between tests so overrides never leak
- Testcontainers setup for Redis
- Leaderboard service factories over MemoryRankStore and RedisRankStore

Architecture Notes
------------------
- Unit tests use MemoryRankStore or mocks (fast, isolated)
- Integration tests use testcontainers (real Redis) and skip without Docker
- Fixtures follow scope hierarchy: session > function
"""

from __future__ import annotations

import os
import tempfile
from typing import AsyncGenerator, Generator

# Must be set before rankboard.core.config loads the environment
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOGS_DIR", os.path.join(tempfile.gettempdir(), "rankboard-test-logs"))

import pytest
import pytest_asyncio
from redis.asyncio import Redis
from testcontainers.redis import RedisContainer

from rankboard.core.config import ConfigManager
from rankboard.core.logging.logger import clear_log_context, get_logger
from rankboard.core.redis.rank_store import RedisRankStore
from rankboard.core.redis.resilience import RedisResilience
from rankboard.modules.leaderboard.counter import OperationCounter
from rankboard.modules.leaderboard.service import LeaderboardService
from rankboard.modules.leaderboard.store import MemoryRankStore

logger = get_logger(__name__)


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: tests that need a real Redis (Docker)"
    )


@pytest.fixture(autouse=True)
def reset_config_manager() -> Generator[None, None, None]:
    """Give every test a fresh ConfigManager and log context."""
    ConfigManager.reset()
    clear_log_context()
    yield
    ConfigManager.reset()
    clear_log_context()


# ============================================================================
# UNIT FIXTURES
# ============================================================================


@pytest.fixture
def memory_store() -> MemoryRankStore:
    return MemoryRankStore()


@pytest.fixture
def counter(memory_store: MemoryRankStore) -> OperationCounter:
    return OperationCounter(memory_store)


@pytest.fixture
def leaderboard(memory_store: MemoryRankStore, counter: OperationCounter) -> LeaderboardService:
    """LeaderboardService over an in-memory store with two display decimals."""
    return LeaderboardService(memory_store, counter, decimal_places=2)


@pytest.fixture
def mock_redis_client(mocker):
    """
    Mock redis.asyncio client.

    Commands are AsyncMocks; `register_script` returns an AsyncMock script.
    """
    client = mocker.MagicMock()
    for command in (
        "get",
        "set",
        "incr",
        "incrby",
        "zadd",
        "zincrby",
        "zscore",
        "zrevrank",
        "zrevrange",
        "ping",
    ):
        setattr(client, command, mocker.AsyncMock())
    client.register_script = mocker.MagicMock(return_value=mocker.AsyncMock())
    return client


@pytest.fixture
def fast_resilience() -> RedisResilience:
    """RedisResilience with no retry delay and a low circuit threshold."""
    ConfigManager.set("core.redis.resilience.retry.initial_delay_seconds", 0.0)
    ConfigManager.set("core.redis.resilience.retry.max_delay_seconds", 0.0)
    ConfigManager.set("core.redis.resilience.circuit.failure_threshold", 3)
    return RedisResilience()


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainer, None, None]:
    """
    Start Redis testcontainer for integration tests.

    Scope: session (container persists across all tests)
    Skips the requesting tests when Docker is not available.
    """
    logger.info("Starting Redis testcontainer...")
    container = RedisContainer(image="redis:7-alpine")
    try:
        container.start()
    except Exception as exc:  # Docker daemon missing or unreachable
        pytest.skip(f"Redis testcontainer unavailable: {exc}")

    logger.info(
        "Redis testcontainer started: %s:%s",
        container.get_container_host_ip(),
        container.get_exposed_port(6379),
    )

    yield container

    logger.info("Stopping Redis testcontainer...")
    container.stop()


@pytest.fixture(scope="session")
def redis_url(redis_container: RedisContainer) -> str:
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    return f"redis://{host}:{port}/0"


@pytest_asyncio.fixture
async def redis_client(redis_url: str) -> AsyncGenerator[Redis, None]:
    """Client on an emptied database; closed after the test."""
    client = Redis.from_url(redis_url, decode_responses=True)
    await client.flushdb()
    yield client
    await client.flushdb()
    await client.aclose()


@pytest.fixture
def redis_store(redis_client: Redis) -> RedisRankStore:
    return RedisRankStore(redis_client, RedisResilience())


@pytest.fixture
def redis_leaderboard(redis_store: RedisRankStore) -> LeaderboardService:
    return LeaderboardService(redis_store, OperationCounter(redis_store), decimal_places=2)
