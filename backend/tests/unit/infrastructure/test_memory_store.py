"""
Unit tests for the in-process cache store.
"""

import pytest

from siteindex.infrastructure.cache import CacheStore, create_cache_store
from siteindex.infrastructure.cache.exceptions import (
    CacheStoreConfigurationException,
    CacheStoreOperationException,
)
from siteindex.infrastructure.cache.memory_store import MemoryCacheStore


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemoryCacheStore:
    """Test Redis-like semantics of the memory store."""

    def test_satisfies_protocol(self):
        assert isinstance(MemoryCacheStore(), CacheStore)

    @pytest.mark.asyncio
    async def test_set_get_and_ttl(self):
        clock = FakeClock()
        store = MemoryCacheStore(clock=clock)

        await store.set("k", "v", 30)
        clock.now += 10

        assert await store.get("k") == "v"
        assert await store.ttl("k") == 20

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        clock = FakeClock()
        store = MemoryCacheStore(clock=clock)
        await store.set("k", "v", 30)

        clock.now += 30

        assert await store.get("k") is None
        assert await store.ttl("k") == -2
        assert await store.keys("*") == []

    @pytest.mark.asyncio
    async def test_ttl_without_expiry(self):
        store = MemoryCacheStore()
        await store.set("k", "v")
        assert await store.ttl("k") == -1

    @pytest.mark.asyncio
    async def test_delete_counts_existing_keys(self):
        store = MemoryCacheStore()
        await store.set("a", "1")
        await store.set("b", "2")

        assert await store.delete("a", "b", "c") == 2
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_keys_glob(self):
        store = MemoryCacheStore()
        for key in ("idx:all", "idx::A:", "stats:dashboard"):
            await store.set(key, "x")

        assert sorted(await store.keys("idx:*")) == ["idx::A:", "idx:all"]

    @pytest.mark.asyncio
    async def test_incr_counts_within_window(self):
        clock = FakeClock()
        store = MemoryCacheStore(clock=clock)

        assert await store.incr("rl:k", 30) == 1
        clock.now += 10
        assert await store.incr("rl:k", 30) == 2
        assert await store.ttl("rl:k") == 20

        clock.now += 25
        assert await store.incr("rl:k", 30) == 1

    @pytest.mark.asyncio
    async def test_incr_on_non_integer_is_translated(self):
        store = MemoryCacheStore()
        await store.set("idx:all", "[]")

        with pytest.raises(CacheStoreOperationException) as exc_info:
            await store.incr("idx:all")

        assert exc_info.value.details["operation"] == "incr"

    @pytest.mark.asyncio
    async def test_close_clears_entries(self):
        store = MemoryCacheStore()
        await store.set("k", "v")
        assert await store.ping() is True

        await store.close()

        assert len(store) == 0


class TestCreateCacheStore:
    """Test backend selection."""

    def test_memory_backend(self, settings):
        assert isinstance(create_cache_store(settings), MemoryCacheStore)

    def test_unknown_backend(self, settings):
        bad = settings.model_copy(update={"CACHE_BACKEND": "memcached"})
        with pytest.raises(CacheStoreConfigurationException):
            create_cache_store(bad)
