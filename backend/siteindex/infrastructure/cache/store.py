"""
Cache store abstraction.

Call sites depend on the ``CacheStore`` protocol rather than a concrete
client. One store is built at startup by ``create_cache_store`` and passed
explicitly to the components that need it.
"""

from typing import List, Optional, Protocol, runtime_checkable

from ...core.config import Settings
from .exceptions import CacheStoreConfigurationException


@runtime_checkable
class CacheStore(Protocol):
    """
    Minimal Redis-compatible key-value surface used by the service.

    Adapters translate every backend failure into a ``CacheStoreException``
    subclass. Callers only degrade on that hierarchy; anything else
    escaping an adapter is a bug in the adapter and propagates.
    """

    async def get(self, key: str) -> Optional[str]:
        """Return the stored text or None when absent."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store text under key, expiring after ttl_seconds when given."""
        ...

    async def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        ...

    async def keys(self, pattern: str = "*") -> List[str]:
        """List keys matching a store-side glob pattern."""
        ...

    async def incr(self, key: str, ttl_seconds: Optional[int] = None) -> int:
        """Increment an integer counter, starting its expiry on creation."""
        ...

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -1 when no expiry, -2 when absent."""
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...


def create_cache_store(settings: Settings) -> CacheStore:
    """Build the configured cache store."""
    backend = settings.CACHE_BACKEND
    if backend == "redis":
        from .redis_store import RedisCacheStore

        return RedisCacheStore.from_settings(settings)
    if backend == "memory":
        from .memory_store import MemoryCacheStore

        return MemoryCacheStore()
    raise CacheStoreConfigurationException(
        f"Unsupported cache backend: {backend}", config_key="CACHE_BACKEND"
    )
