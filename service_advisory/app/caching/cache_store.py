"""
Redis-backed key/value store for the advisory edge cache.
"""

from typing import Any, Optional

import redis.asyncio as redis

from shared.logging import get_logger


KEY_PREFIX = "advisory"


class RedisCacheStore:
    """Thin async wrapper over Redis GET/SETEX; TTL expiry is the only eviction."""

    def __init__(self, redis_url: str, client: Optional[Any] = None):
        self.redis_url = redis_url
        self.logger = get_logger("advisory.cache_store")
        self._redis = client

    async def _get_redis(self):
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return self._redis

    def make_key(self, *parts: str) -> str:
        """Generate cache key."""
        return ":".join([KEY_PREFIX, *parts])

    async def get(self, key: str) -> Optional[str]:
        """Get raw value from cache."""
        client = await self._get_redis()
        value = await client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Set raw value with an expiry in seconds."""
        client = await self._get_redis()
        await client.setex(key, ttl, value)
        self.logger.debug("Cached value", key=key, ttl=ttl)

    async def ping(self) -> bool:
        client = await self._get_redis()
        return bool(await client.ping())

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
