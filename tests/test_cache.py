"""
Test Redis Cache Module
"""
import pytest
from unittest.mock import AsyncMock, patch
from countyzones.core.cache import RedisCache, grid_cache_key


@pytest.fixture
def mock_redis():
    with patch("redis.asyncio.from_url") as mock:
        yield mock


@pytest.fixture
def fresh_cache():
    RedisCache._instance = None
    cache = RedisCache()
    yield cache
    cache.client = None


@pytest.mark.asyncio
async def test_redis_connection(mock_redis, fresh_cache):
    mock_client = AsyncMock()
    mock_redis.return_value = mock_client

    await fresh_cache.connect()

    mock_redis.assert_called_once()
    mock_client.ping.assert_awaited_once()
    assert fresh_cache.client == mock_client

    await fresh_cache.close()
    mock_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_connection_failure_fails_open(mock_redis, fresh_cache):
    mock_client = AsyncMock()
    mock_client.ping.side_effect = ConnectionError("refused")
    mock_redis.return_value = mock_client

    await fresh_cache.connect()

    assert fresh_cache.client is None
    assert await fresh_cache.get("api:grid:x") is None
    await fresh_cache.set("api:grid:x", {"cells": []})


@pytest.mark.asyncio
async def test_redis_get_set(fresh_cache):
    fresh_cache.client = AsyncMock()

    await fresh_cache.set("test_key", {"cells": [{"id": 1}]}, ttl=60)
    fresh_cache.client.setex.assert_awaited_once_with("test_key", 60, '{"cells": [{"id": 1}]}')

    fresh_cache.client.get.return_value = '{"cells": [{"id": 1}]}'
    assert await fresh_cache.get("test_key") == {"cells": [{"id": 1}]}

    fresh_cache.client.get.return_value = None
    assert await fresh_cache.get("missing") is None


@pytest.mark.asyncio
async def test_redis_errors_are_misses(fresh_cache):
    fresh_cache.client = AsyncMock()
    fresh_cache.client.get.side_effect = RuntimeError("timeout")
    fresh_cache.client.setex.side_effect = RuntimeError("timeout")

    assert await fresh_cache.get("k") is None
    await fresh_cache.set("k", {"a": 1})


def test_singleton():
    assert RedisCache() is RedisCache()


def test_grid_cache_key():
    assert grid_cache_key("0500000US12057", 16, True) == "api:grid:0500000US12057:hex:16:clip"
    assert grid_cache_key("0500000US12057", 16, False) == "api:grid:0500000US12057:hex:16:full"
