"""Redis client factory for async connection management.

Example:
    >>> from bulkpurge.infra.persistence.redis_client import get_redis_factory
    >>> factory = get_redis_factory()
    >>> client = await factory.get_client()
    >>> await client.ping()
    True
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from bulkpurge.infra.persistence.redis_settings import RedisSettings


class RedisFactory:
    """Factory for creating the shared Redis async client.

    Wraps redis-py's async client with:
    - Type-safe configuration via Pydantic settings
    - Automatic REDIS_URL parsing
    - An explicit connection pool that is released on close

    Responses are decoded to ``str``; the gate and the status store only
    keep text values.

    Usage:
        factory = RedisFactory.from_env()
        client = await factory.get_client()
        await client.ping()
        await factory.close()
    """

    def __init__(self, settings: RedisSettings) -> None:
        self._settings = settings
        self._pool: Any = None
        self._client: Any = None

    @classmethod
    def from_env(cls) -> RedisFactory:
        """Create factory from ``REDIS_URL`` or the individual REDIS_* variables."""
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            return cls.from_url(redis_url)
        return cls(RedisSettings())

    @classmethod
    def from_url(cls, url: str) -> RedisFactory:
        """Create factory from Redis URL.

        Raises:
            ValueError: If URL is invalid.
        """
        return cls(RedisSettings.from_url(url))

    @property
    def settings(self) -> RedisSettings:
        """Get the Redis settings."""
        return self._settings

    async def get_client(self) -> Any:
        """Get the Redis async client, creating it lazily on first access."""
        if self._client is None:
            import redis.asyncio as aioredis

            self._pool = aioredis.ConnectionPool.from_url(
                self._settings.get_url(),
                max_connections=self._settings.redis_pool_size,
                socket_timeout=self._settings.redis_socket_timeout,
                socket_connect_timeout=self._settings.redis_socket_connect_timeout,
                decode_responses=True,
            )
            self._client = aioredis.Redis(connection_pool=self._pool)
        return self._client

    async def close(self) -> None:
        """Close the client and its pool. No-op when never connected."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.aclose()
            self._pool = None


@lru_cache(maxsize=1)
def get_redis_factory() -> RedisFactory:
    """Get cached Redis factory singleton."""
    return RedisFactory.from_env()
