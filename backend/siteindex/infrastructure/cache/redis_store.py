"""
Redis Cache Store

``CacheStore`` implementation on top of ``redis.asyncio`` with a shared
connection pool. Every Redis error is translated into a
``CacheStoreException`` subclass so callers handle a single hierarchy.

Responses are read as bytes and decoded here: a value that is not valid
UTF-8 reads as absent, and such keys are left out of key listings.
"""

import logging
from typing import List, Optional
from urllib.parse import urlparse

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    AuthenticationError,
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from ...core.config import Settings
from .exceptions import (
    CacheStoreConnectionException,
    CacheStoreOperationException,
)

logger = logging.getLogger(__name__)


class RedisCacheStore:
    """Redis-backed cache store."""

    def __init__(self, client: Redis, url: Optional[str] = None):
        self._client = client
        self._url = url

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisCacheStore":
        """Create a store with a connection pool built from settings."""
        pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=False,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            retry_on_timeout=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
        )
        parsed = urlparse(settings.REDIS_URL)
        logger.info(
            "Redis cache store configured",
            extra={
                "host": parsed.hostname,
                "port": parsed.port,
                "max_connections": settings.REDIS_MAX_CONNECTIONS,
            },
        )
        # Never log credentials
        safe_url = f"{parsed.scheme}://{parsed.hostname}:{parsed.port or 6379}"
        return cls(Redis(connection_pool=pool), url=safe_url)

    def _translate(
        self, operation: str, error: RedisError, key: Optional[str] = None
    ) -> Exception:
        if isinstance(error, (RedisConnectionError, RedisTimeoutError, AuthenticationError)):
            return CacheStoreConnectionException(
                message=f"Redis unavailable during {operation}",
                url=self._url,
                original_error=error,
            )
        return CacheStoreOperationException(operation, key=key, original_error=error)

    async def get(self, key: str) -> Optional[str]:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            raise self._translate("get", e, key) from e

        if isinstance(raw, bytes):
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning(f"Cached value for {key} is not valid UTF-8")
                return None
        return raw

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise self._translate("set", e, key) from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self._client.delete(*keys))
        except RedisError as e:
            raise self._translate("delete", e, keys[0] if len(keys) == 1 else None) from e

    async def keys(self, pattern: str = "*") -> List[str]:
        try:
            raw_keys = [key async for key in self._client.scan_iter(match=pattern, count=500)]
        except RedisError as e:
            raise self._translate("keys", e) from e

        keys = []
        for raw in raw_keys:
            if not isinstance(raw, bytes):
                keys.append(raw)
                continue
            try:
                keys.append(raw.decode("utf-8"))
            except UnicodeDecodeError:
                logger.warning(f"Skipping cache key that is not valid UTF-8: {raw!r}")
        return keys

    async def incr(self, key: str, ttl_seconds: Optional[int] = None) -> int:
        try:
            value = int(await self._client.incr(key))
            if ttl_seconds and value == 1:
                await self._client.expire(key, ttl_seconds)
            return value
        except RedisError as e:
            raise self._translate("incr", e, key) from e

    async def ttl(self, key: str) -> int:
        try:
            return int(await self._client.ttl(key))
        except RedisError as e:
            raise self._translate("ttl", e, key) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            raise self._translate("ping", e) from e

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis cache store closed")
