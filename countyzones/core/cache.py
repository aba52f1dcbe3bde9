"""
@file cache.py
@brief Shared Redis tier for serialised grids
@details
One process-wide RedisCache (singleton) stores JSON payloads produced by the
grid endpoint so other workers can skip the build. The in-process memo lives
in geo.grid_cache; this tier sits in front of it.

Every operation fails open: with Redis down or misbehaving, reads are misses
and writes are dropped.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from countyzones.core import config

logger = logging.getLogger(__name__)

## @brief Key namespace for grid payloads
GRID_KEY_PREFIX = "api:grid"


def grid_cache_key(geo_id: str, grid_size: int, clip_edges: bool) -> str:
    """Redis key for a serialised grid; mirrors geo.grid_cache.GridKey."""
    mode = "clip" if clip_edges else "full"
    return f"{GRID_KEY_PREFIX}:{geo_id}:hex:{grid_size}:{mode}"


class RedisCache:
    """
    @brief Process-wide async Redis client holder
    """

    _instance: Optional["RedisCache"] = None
    client: Optional[redis.Redis] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def available(self) -> bool:
        return self.client is not None

    async def connect(self, url: Optional[str] = None) -> bool:
        """
        @brief Open the client and ping it
        @return False (and no client) when Redis is unreachable
        """
        url = url or config.REDIS_URL
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        try:
            await client.ping()
        except Exception as e:
            logger.warning(f"Redis unavailable at {url}, grid payloads will not be shared: {e}")
            self.client = None
            return False
        self.client = client
        logger.info(f"Redis grid cache connected: {url}")
        return True

    async def close(self) -> None:
        if self.client is None:
            return
        await self.client.close()
        self.client = None
        logger.info("Redis grid cache closed")

    async def get(self, key: str) -> Optional[Any]:
        """
        @brief Decoded JSON payload, or None on miss or error
        """
        if self.client is None:
            return None
        try:
            raw = await self.client.get(key)
        except Exception as e:
            logger.warning(f"Redis read failed for {key}: {e}")
            return None
        return json.loads(raw) if raw else None

    async def set(self, key: str, value: Any, ttl: int = config.GRID_CACHE_TTL) -> None:
        if self.client is None:
            return
        try:
            await self.client.setex(key, ttl, json.dumps(value))
        except Exception as e:
            logger.warning(f"Redis write failed for {key}: {e}")


## @brief Shared instance used by the API
cache = RedisCache()
