"""
Cache Store Infrastructure

Key-value store adapters behind the ``CacheStore`` protocol:
- RedisCacheStore: redis.asyncio client with a shared connection pool
- MemoryCacheStore: in-process store for development and tests
"""

from .store import CacheStore, create_cache_store
from .memory_store import MemoryCacheStore
from .redis_store import RedisCacheStore
from .exceptions import (
    CacheStoreException,
    CacheStoreConnectionException,
    CacheStoreOperationException,
    CacheStoreConfigurationException,
    CacheStoreHTTPException,
)

__all__ = [
    "CacheStore",
    "create_cache_store",
    "MemoryCacheStore",
    "RedisCacheStore",
    "CacheStoreException",
    "CacheStoreConnectionException",
    "CacheStoreOperationException",
    "CacheStoreConfigurationException",
    "CacheStoreHTTPException",
]
