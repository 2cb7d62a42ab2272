# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Redis access layer with bounded call times."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable
from datetime import timedelta
from typing import TYPE_CHECKING, Any, TypeVar

import redis.asyncio as redis
from attrs import field, frozen
from beartype import beartype
from redis.exceptions import RedisError

from .config import get_settings

__all__ = [
    "Cache",
    "CacheUnavailableError",
    "get_cache",
    "init_redis_pool",
    "close_redis_pool",
    "RedisType",
]

if TYPE_CHECKING:
    from redis.asyncio import Redis as RedisType
else:
    RedisType = redis.Redis

T = TypeVar("T")


class CacheUnavailableError(Exception):
    """Raised when Redis cannot answer within the configured bound."""


@frozen
class CacheConfig:
    """Immutable cache configuration."""

    url: str = field()
    timeout_seconds: float = field(default=5.0)
    max_connections: int = field(default=10)
    decode_responses: bool = field(default=True)


class Cache:
    """Redis cache manager with async support.

    The constructor optionally accepts an already-created ``redis.asyncio.Redis``
    instance so tests and dependency-injection helpers can do
    ``Cache(redis_client)``; :py:meth:`connect` is then a no-op.
    """

    def __init__(
        self,
        redis_client: RedisType | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._redis: RedisType | None = redis_client
        self._config = self._get_config(timeout_seconds)

    @beartype
    def _get_config(self, timeout_seconds: float | None) -> CacheConfig:
        """Get cache configuration from settings."""
        settings = get_settings()
        return CacheConfig(
            url=settings.redis_url,
            timeout_seconds=timeout_seconds or settings.datastore_timeout_seconds,
        )

    @property
    def client(self) -> RedisType:
        """Underlying client; raises if not connected."""
        if self._redis is None:
            raise RuntimeError("Cache not connected")
        return self._redis

    @beartype
    async def connect(self) -> None:
        """Create Redis connection pool."""
        if self._redis is not None:
            return

        self._redis = redis.from_url(
            self._config.url,
            max_connections=self._config.max_connections,
            decode_responses=self._config.decode_responses,
            socket_timeout=self._config.timeout_seconds,
            socket_connect_timeout=self._config.timeout_seconds,
        )

    @beartype
    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._redis is None:
            return

        await self._redis.aclose()
        self._redis = None

    async def _bounded(self, call: Awaitable[T]) -> T:
        """Await a Redis call, converting timeouts and transport errors."""
        try:
            return await asyncio.wait_for(call, timeout=self._config.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise CacheUnavailableError("Redis call timed out") from e
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"Redis call failed: {e}") from e

    @beartype
    async def get(self, key: str) -> Any | None:
        """Get a JSON value from cache."""
        value = await self._bounded(self.client.get(key))
        if value is None:
            return None

        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    @beartype
    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | timedelta,
        *,
        only_if_absent: bool = False,
    ) -> bool:
        """Set a value with a TTL; optionally only when the key is new."""
        if isinstance(ttl, int):
            ttl = timedelta(seconds=ttl)

        if not isinstance(value, (str, int, float, bytes)):
            value = json.dumps(value, default=str)

        result = await self._bounded(
            self.client.set(key, value, ex=ttl, nx=only_if_absent)
        )
        return bool(result)

    @beartype
    async def getdel(self, key: str) -> Any | None:
        """Atomically read and delete a key."""
        value = await self._bounded(self.client.getdel(key))
        if value is None:
            return None

        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    @beartype
    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        result = await self._bounded(self.client.delete(key))
        return bool(result > 0)

    @beartype
    async def sliding_window_hit(
        self, key: str, member: str, now: float | int, window_seconds: int, limit: int
    ) -> int:
        """Record a hit in a sorted-set window and return the hit count.

        The trim, insert, count and expire run as one MULTI/EXEC block, so
        concurrent callers never lose an update. A hit that pushes the count
        past ``limit`` is removed again and does not consume quota.
        """
        pipe = self.client.pipeline(transaction=True)
        pipe.zremrangebyscore(key, "-inf", now - window_seconds)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.expire(key, window_seconds)
        results = await self._bounded(pipe.execute())
        count = int(results[2])
        if count > limit:
            await self._bounded(self.client.zrem(key, member))
        return count


_cache: Cache | None = None


@beartype
def get_cache() -> Cache:
    """Get global cache instance."""
    global _cache
    if _cache is None:
        _cache = Cache()
    return _cache


@beartype
async def init_redis_pool() -> None:
    """Initialize the Redis connection pool."""
    await get_cache().connect()


@beartype
async def close_redis_pool() -> None:
    """Close the Redis connection pool."""
    global _cache
    if _cache is not None:
        await _cache.disconnect()
        _cache = None
