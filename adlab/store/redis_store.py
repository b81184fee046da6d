# Redis-backed store (redis.asyncio). All redis-py errors surface as StoreError
# so callers can apply their own policy: quota fail-closed, cache best-effort.

from __future__ import annotations

from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from adlab.exceptions import StoreError

logger = structlog.get_logger(__name__)


class RedisStore:
    """KeyValueStore over a single Redis connection pool."""

    backend = "redis"

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, timeout_seconds: float = 2.0) -> RedisStore:
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
            retry_on_timeout=False,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        try:
            value: Any = await self._client.get(key)
        except RedisError as e:
            raise StoreError(f"GET failed: {e}") from e
        return None if value is None else str(value)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise StoreError(f"SET failed: {e}") from e

    async def incr(self, key: str, ttl_seconds: int) -> int:
        # MULTI/EXEC: the counter never exists without a TTL.
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl_seconds)
                count, _ = await pipe.execute()
        except RedisError as e:
            raise StoreError(f"INCR failed: {e}") from e
        return int(count)

    async def decr(self, key: str) -> int:
        try:
            return int(await self._client.decr(key))
        except RedisError as e:
            raise StoreError(f"DECR failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("store_ping_failed", backend=self.backend, error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()
