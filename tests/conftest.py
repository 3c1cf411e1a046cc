"""
Redis Cache Manager — Test Configuration and Shared Fixtures

Provides fixtures wired to the in-memory fake Redis (tests/fakes.py) plus
the connection string used by the optional real-Redis tests.
"""

import os
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest

from redis_cache_manager.cache.manager import RedisCacheManager
from redis_cache_manager.config import RedisSettings
from tests.fakes import FakeRedisCluster

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


@pytest.fixture
def fake_cluster() -> FakeRedisCluster:
    """Fresh fake Redis deployment per test."""
    return FakeRedisCluster()


@pytest.fixture
def settings() -> RedisSettings:
    return RedisSettings(connection_string="localhost:6379")


@pytest.fixture
async def manager(settings: RedisSettings, fake_cluster: FakeRedisCluster) -> AsyncGenerator[RedisCacheManager, None]:
    """Cache manager wired to the fake cluster."""
    cache = RedisCacheManager(settings, client_factory=fake_cluster)
    yield cache
    await cache.close()


@pytest.fixture
def test_redis_connection_string() -> str:
    """Connection string for the real-Redis tests (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_CONNECTION_STRING", "localhost:6379,defaultDatabase=15")


@pytest.fixture
def sample_cache_data() -> dict[str, Any]:
    """Sample data for cache testing."""
    return {
        "simple_string": "hello",
        "simple_int": 42,
        "simple_float": 3.14,
        "simple_bool": True,
        "complex_dict": {
            "nested": {
                "key": "value",
                "number": 123,
                "list": [1, 2, 3],
            }
        },
        "complex_list": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ],
    }


@pytest.fixture(autouse=True)
def reset_cache_factory() -> Generator[None, None, None]:
    """Reset the manager registry after each test to prevent state leakage."""
    yield
    from redis_cache_manager.cache.factory import reset_cache_factory

    reset_cache_factory()
