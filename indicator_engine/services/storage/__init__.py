"""
Storage module for chart state.

Provides in-memory and Redis persistence of serialized chart state.
"""

from indicator_engine.services.storage.adapters import MemoryStorageAdapter, StorageAdapter
from indicator_engine.services.storage.redis_client import (
    RedisStorageAdapter,
    close_redis,
    get_storage_adapter,
    init_redis,
)

__all__ = [
    "StorageAdapter",
    "MemoryStorageAdapter",
    "RedisStorageAdapter",
    "get_storage_adapter",
    "init_redis",
    "close_redis",
]
