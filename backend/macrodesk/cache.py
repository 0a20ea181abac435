"""Key-value cache client (Redis)."""
from __future__ import annotations

import logging
from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from macrodesk.errors import CollaboratorError

logger = logging.getLogger(__name__)


class KeyValueCache(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def close(self) -> None: ...


class RedisCache:
    """String get/set over ``redis.asyncio`` with errors mapped to CollaboratorError."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float | None = None) -> "RedisCache":
        return cls(
            redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
            )
        )

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            logger.error("Cache read failed for %s: %s", key, exc)
            raise CollaboratorError(f"Cache read failed: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(key, value)
        except RedisError as exc:
            logger.error("Cache write failed for %s: %s", key, exc)
            raise CollaboratorError(f"Cache write failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            logger.error("Cache delete failed for %s: %s", key, exc)
            raise CollaboratorError(f"Cache delete failed: {exc}") from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

    async def close(self) -> None:
        await self._redis.aclose()
