"""
Storage adapters for persisted chart state.

Adapters store opaque JSON strings under short keys (the chart symbol).
Implementations handle their own backend failures: they log and degrade,
``load`` returning None and ``keys`` returning an empty list.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageAdapter(ABC):
    """Async key/value persistence contract."""

    @abstractmethod
    async def save(self, key: str, data: str) -> None:
        pass

    @abstractmethod
    async def load(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        pass


class MemoryStorageAdapter(StorageAdapter):
    """Dict-backed storage; used for tests and as the Redis fallback."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def save(self, key: str, data: str) -> None:
        self._store[key] = data

    async def load(self, key: str) -> Optional[str]:
        return self._store.get(key)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._store)
