"""Durable cache store backed by Redis.

Thin adapter: ``get`` / ``set_with_expiry`` over a lazily created
``redis.asyncio`` connection pool. Redis errors are re-raised as
``DependencyUnavailable``; the cache layer decides what to do with them.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..errors import DependencyUnavailable

logger = logging.getLogger(__name__)


class RedisCacheStore:
    """Key/value store with TTL on top of Redis.

    Args:
        url: Redis URL, e.g. ``redis://localhost:6379/0``.
        prefix: Namespace prepended to every key.
        socket_timeout: Per-operation socket timeout in seconds.
    """

    def __init__(self, url: str, prefix: str = "ticketgen:", socket_timeout: float = 2.0):
        self._url = url
        self._prefix = prefix
        self._socket_timeout = socket_timeout
        self._pool: Optional[redis.ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    @property
    def url(self) -> str:
        return self._url

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._pool = redis.ConnectionPool.from_url(
                self._url,
                max_connections=20,
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
            )
            self._client = redis.Redis(connection_pool=self._pool)
        return self._client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._get_client().get(self._prefix + key)
        except (RedisError, OSError) as e:
            raise DependencyUnavailable(f"Redis GET failed for {key}: {e}") from e

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._get_client().set(self._prefix + key, value, ex=int(ttl_seconds))
        except (RedisError, OSError) as e:
            raise DependencyUnavailable(f"Redis SET failed for {key}: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Redis cache store closed")
