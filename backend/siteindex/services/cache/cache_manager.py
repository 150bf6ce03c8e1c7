"""
Read-Through Cache Service

Get-or-populate caching and key/pattern invalidation on top of an injected
``CacheStore``. The cache is a performance optimization only: store failures
degrade to direct population and never fail the calling request.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from opentelemetry import trace
from prometheus_client import Counter
from pydantic import ValidationError

from ...domain.cache.patterns import filter_keys
from ...domain.cache.value_objects import (
    CacheKey,
    InvalidationResult,
    InvalidationSelector,
    ListingKeyType,
)
from ...domain.exceptions import InvalidSelectorError
from ...infrastructure.cache.exceptions import CacheStoreException
from ...infrastructure.cache.store import CacheStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")

CACHE_LOOKUPS = Counter(
    "siteindex_cache_lookups_total",
    "Read-through cache lookups by outcome",
    ["outcome"],
)
CACHE_INVALIDATED_KEYS = Counter(
    "siteindex_cache_invalidated_keys_total",
    "Cache keys removed by invalidation",
)

PREVIEW_LENGTH = 100
DEFAULT_INSPECT_LIMIT = 50


class ReadThroughCache:
    """
    Read-through cache over a key-value store.

    Values are stored as JSON text. Anything else found under a key (a
    non-string value, text that fails to decode, or a decoded ``null``) is
    treated as a miss and overwritten on repopulation.
    """

    def __init__(self, store: CacheStore, namespace: str = "indexItems"):
        self.store = store
        self.namespace = namespace
        self.hits = 0
        self.misses = 0
        self.errors = 0

    def _decode(self, key: str, raw: Any) -> Optional[Any]:
        if not isinstance(raw, str):
            if raw is not None:
                logger.warning(
                    f"Unexpected cached value type for {key}: {type(raw).__name__}"
                )
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    async def get_or_populate(
        self,
        key: Union[str, CacheKey],
        populate: Callable[[], Awaitable[T]],
        ttl_seconds: int,
    ) -> T:
        """
        Return the cached value for key, populating it on a miss.

        Args:
            key: Cache key
            populate: Zero-argument coroutine function performing the query
            ttl_seconds: Expiry applied when the populated value is stored

        Returns:
            The cached or freshly populated value

        Errors raised by ``populate`` propagate unchanged.
        """
        key = str(key)
        with tracer.start_as_current_span("cache.get_or_populate") as span:
            span.set_attribute("cache.key", key)

            try:
                raw = await self.store.get(key)
            except CacheStoreException as e:
                self.errors += 1
                CACHE_LOOKUPS.labels(outcome="fallback").inc()
                span.set_attribute("cache.fallback", True)
                logger.warning(f"Cache read failed for {key}, bypassing cache: {e}")
                return await populate()

            cached = self._decode(key, raw)
            if cached is not None:
                self.hits += 1
                CACHE_LOOKUPS.labels(outcome="hit").inc()
                span.set_attribute("cache.hit", True)
                return cached

            self.misses += 1
            CACHE_LOOKUPS.labels(outcome="miss").inc()
            span.set_attribute("cache.hit", False)

            value = await populate()

            try:
                await self.store.set(key, json.dumps(value, default=str), ttl_seconds)
            except CacheStoreException as e:
                self.errors += 1
                logger.warning(f"Cache write failed for {key}: {e}")
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))

            return value

    async def _delete_keys(self, keys: List[str]) -> int:
        """Delete keys concurrently; a failure on one key does not affect the rest."""
        if not keys:
            return 0

        results = await asyncio.gather(
            *(self.store.delete(key) for key in keys), return_exceptions=True
        )

        count = 0
        for key, result in zip(keys, results):
            if isinstance(result, CacheStoreException):
                self.errors += 1
                logger.warning(f"Failed to invalidate cache key {key}: {result}")
            elif isinstance(result, BaseException):
                raise result
            else:
                count += result
        return count

    async def invalidate(
        self, selector: Union[InvalidationSelector, Mapping[str, Any]]
    ) -> InvalidationResult:
        """
        Invalidate cache entries chosen by a key, key list, or glob pattern.

        Raises:
            InvalidSelectorError: If the selector names nothing to invalidate
        """
        if not isinstance(selector, InvalidationSelector):
            try:
                selector = InvalidationSelector.model_validate(dict(selector))
            except ValidationError as e:
                raise InvalidSelectorError(
                    "Must provide key, keys, or pattern to invalidate"
                ) from e

        with tracer.start_as_current_span("cache.invalidate") as span:
            if selector.key:
                mode = "key"
                count = await self._delete_keys([selector.key])
            elif selector.keys:
                mode = "keys"
                count = await self._delete_keys(list(dict.fromkeys(selector.keys)))
            else:
                mode = "pattern"
                span.set_attribute("cache.pattern", selector.pattern)
                try:
                    all_keys = await self.store.keys("*")
                except CacheStoreException as e:
                    self.errors += 1
                    logger.error(
                        f"Failed to list cache keys for pattern {selector.pattern}: {e}"
                    )
                    span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                    return InvalidationResult(invalidated_count=0, mode=mode)

                count = await self._delete_keys(filter_keys(all_keys, selector.pattern))

            span.set_attribute("cache.invalidated_count", count)
            CACHE_INVALIDATED_KEYS.inc(count)
            logger.info(
                f"Invalidated {count} cache entries",
                extra={"mode": mode, "invalidated_count": count},
            )
            return InvalidationResult(invalidated_count=count, mode=mode)

    async def find_keys(self, pattern: str = "*") -> List[str]:
        """List live keys matching a glob pattern; returns [] if the store is down."""
        try:
            all_keys = await self.store.keys("*")
        except CacheStoreException as e:
            self.errors += 1
            logger.warning(f"Failed to list cache keys: {e}")
            return []
        return filter_keys(all_keys, pattern)

    def _classify(self, key: str) -> str:
        parts = CacheKey.parse_listing(key, self.namespace)
        if parts is None:
            return "other"
        return parts.key_type.value

    async def stats(self) -> Dict[str, Any]:
        """
        Summarize cache contents and process-local counters.

        Store errors propagate so admin callers can report the store as
        unavailable.
        """
        keys = await self.store.keys("*")

        by_type: Dict[str, int] = {key_type.value: 0 for key_type in ListingKeyType}
        by_type["other"] = 0
        for key in keys:
            by_type[self._classify(key)] += 1

        lookups = self.hits + self.misses
        return {
            "total_keys": len(keys),
            "keys_by_type": by_type,
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate": round(self.hits / lookups, 4) if lookups else 0.0,
        }

    async def inspect(self, limit: int = DEFAULT_INSPECT_LIMIT) -> List[Dict[str, Any]]:
        """Describe the first ``limit`` keys in sorted order."""
        keys = sorted(await self.store.keys("*"))[:limit]

        entries = []
        for key in keys:
            value = await self.store.get(key)
            ttl = await self.store.ttl(key)
            text = value if isinstance(value, str) else ""
            entries.append(
                {
                    "key": key,
                    "type": self._classify(key),
                    "value_preview": text[:PREVIEW_LENGTH],
                    "ttl": ttl if ttl >= 0 else -1,
                    "size": len(text.encode("utf-8")),
                }
            )
        return entries
