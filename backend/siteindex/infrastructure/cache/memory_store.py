"""
In-process cache store.

Dictionary-backed ``CacheStore`` with lazy TTL expiry on a monotonic clock.
Used for local development without Redis and in tests.
"""

import time
from fnmatch import fnmatchcase
from typing import Callable, Dict, List, Optional, Tuple

from .exceptions import CacheStoreOperationException


class MemoryCacheStore:
    """Process-local cache store with Redis-like TTL semantics."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # key -> (value, expires_at or None)
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._data[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                deleted += 1
        return deleted

    async def keys(self, pattern: str = "*") -> List[str]:
        return [key for key in list(self._data) if self._live(key) and fnmatchcase(key, pattern)]

    async def incr(self, key: str, ttl_seconds: Optional[int] = None) -> int:
        entry = self._live(key)
        if entry is None:
            expires_at = self._clock() + ttl_seconds if ttl_seconds else None
            value = 1
        else:
            expires_at = entry[1]
            try:
                value = int(entry[0]) + 1
            except ValueError as e:
                raise CacheStoreOperationException("incr", key=key, original_error=e) from e
        self._data[key] = (str(value), expires_at)
        return value

    async def ttl(self, key: str) -> int:
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return max(0, int(round(entry[1] - self._clock())))

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
