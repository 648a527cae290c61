"""
Redis storage for chart state.

Keys: ``{prefix}{symbol}`` -> JSON ChartState (prefix ``chart_`` by default).
Falls back to an in-memory store when Redis is unavailable or a command
fails.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from indicator_engine.core.config import settings
from indicator_engine.services.storage.adapters import MemoryStorageAdapter, StorageAdapter

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis() -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup when the redis backend is configured.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    try:
        _redis_pool = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        await _redis_pool.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis connection closed")


class RedisStorageAdapter(StorageAdapter):
    """Chart state storage on Redis with an in-memory fallback."""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        prefix: Optional[str] = None,
    ):
        self._redis = redis_client
        self._prefix = settings.storage_key_prefix if prefix is None else prefix
        self._fallback = MemoryStorageAdapter()

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    @property
    def prefix(self) -> str:
        return self._prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def save(self, key: str, data: str) -> None:
        if self.redis:
            try:
                await self.redis.set(self._key(key), data)
                return
            except Exception as e:
                logger.warning(f"Redis save failed for {key}: {e}")

        await self._fallback.save(key, data)

    async def load(self, key: str) -> Optional[str]:
        if self.redis:
            try:
                value = await self.redis.get(self._key(key))
                if value is not None:
                    return value
            except Exception as e:
                logger.warning(f"Redis load failed for {key}: {e}")

        return await self._fallback.load(key)

    async def delete(self, key: str) -> None:
        if self.redis:
            try:
                await self.redis.delete(self._key(key))
            except Exception as e:
                logger.warning(f"Redis delete failed for {key}: {e}")

        await self._fallback.delete(key)

    async def keys(self) -> list[str]:
        found: list[str] = []
        if self.redis:
            try:
                async for raw in self.redis.scan_iter(match=f"{self._prefix}*"):
                    found.append(raw[len(self._prefix):])
            except Exception as e:
                logger.warning(f"Redis keys failed: {e}")
                found = []

        for key in await self._fallback.keys():
            if key not in found:
                found.append(key)
        return found


# Singleton instance
_storage_adapter: Optional[StorageAdapter] = None


def get_storage_adapter() -> StorageAdapter:
    """Get the configured storage adapter singleton."""
    global _storage_adapter
    if _storage_adapter is None:
        if settings.storage_backend == "redis":
            _storage_adapter = RedisStorageAdapter()
        else:
            _storage_adapter = MemoryStorageAdapter()
        logger.info(f"Chart state storage: {type(_storage_adapter).__name__}")
    return _storage_adapter
