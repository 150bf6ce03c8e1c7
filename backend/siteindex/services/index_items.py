"""
Index Item Service

Cached reads and cache-invalidating writes for index items. Every listing
read goes through the read-through cache; every write is committed before
the cache keys that could contain the affected records are invalidated.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import structlog

from ..constants import get_current_timestamp, normalize_campus
from ..domain.cache.value_objects import TTL, CacheKey, InvalidationSelector, ListingKeyType
from ..domain.exceptions import IndexItemNotFoundError
from ..repositories.index_item import IndexItemRepository
from .cache.cache_manager import ReadThroughCache

logger = structlog.get_logger()

RECENT_ITEMS_WINDOW = timedelta(days=7)

# (campus, letter)
RecordDimensions = Tuple[str, str]


@dataclass(frozen=True)
class BulkResult:
    """Outcome of a bulk mutation."""

    operation: str
    count: int
    invalidated_count: int


class IndexItemService:
    """
    Index item reads and writes with cache maintenance.

    One instance is created per request around a request-scoped repository;
    the cache is shared application state.
    """

    def __init__(
        self,
        repository: IndexItemRepository,
        cache: ReadThroughCache,
        ttl_seconds: int = TTL.listing().seconds,
        stats_ttl_seconds: int = TTL.dashboard_stats().seconds,
    ):
        self.repository = repository
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.stats_ttl_seconds = stats_ttl_seconds

    @property
    def namespace(self) -> str:
        return self.cache.namespace

    # Reads

    async def _cached_listing(
        self,
        campus: Optional[str] = None,
        letter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        campus = normalize_campus(campus) if campus else None
        letter = letter.strip().upper() if letter else None
        term = CacheKey.normalize_search(search) or None
        key = CacheKey.listing(self.namespace, campus=campus, letter=letter, search=term)

        async def populate() -> List[Dict[str, Any]]:
            items = await self.repository.list_items(
                campus=campus, letter=letter, search=term
            )
            return [item.to_dict() for item in items]

        return await self.cache.get_or_populate(key, populate, self.ttl_seconds)

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self._cached_listing()

    async def list_by_letter(self, letter: str) -> List[Dict[str, Any]]:
        return await self._cached_listing(letter=letter)

    async def list_by_campus(self, campus: str) -> List[Dict[str, Any]]:
        return await self._cached_listing(campus=campus)

    async def list_by_campus_and_letter(
        self, campus: str, letter: str
    ) -> List[Dict[str, Any]]:
        return await self._cached_listing(campus=campus, letter=letter)

    async def search(
        self, term: str, campus: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Case-insensitive title search, optionally within one campus."""
        if not term or not term.strip():
            return await self._cached_listing(campus=campus)
        return await self._cached_listing(campus=campus, search=term)

    async def list_filtered(
        self,
        campus: Optional[str] = None,
        letter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Dispatch a query with any combination of filters to its cached listing."""
        return await self._cached_listing(campus=campus, letter=letter, search=search)

    async def get_item(self, item_id: int) -> Dict[str, Any]:
        item = await self.repository.get(item_id)
        if item is None:
            raise IndexItemNotFoundError(item_id)
        return item.to_dict()

    # Writes

    async def create_item(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        item = await self.repository.create(data)
        record = item.to_dict()
        await self.repository.commit()

        await self._invalidate_for([(item.campus, item.letter)])
        logger.info("Index item created", item_id=record["id"], letter=item.letter)
        return record

    async def update_item(
        self, item_id: int, changes: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Apply a partial update; both the old and new dimensions are invalidated."""
        item = await self.repository.get(item_id)
        if item is None:
            raise IndexItemNotFoundError(item_id)

        before = (item.campus, item.letter)
        item = await self.repository.update(item, changes)
        record = item.to_dict()
        await self.repository.commit()

        await self._invalidate_for([before, (item.campus, item.letter)])
        logger.info("Index item updated", item_id=item_id, fields=sorted(changes))
        return record

    async def delete_item(self, item_id: int) -> None:
        item = await self.repository.get(item_id)
        if item is None:
            raise IndexItemNotFoundError(item_id)

        dimensions = (item.campus, item.letter)
        await self.repository.delete(item)
        await self.repository.commit()

        await self._invalidate_for([dimensions])
        logger.info("Index item deleted", item_id=item_id)

    async def bulk_delete(self, item_ids: Sequence[int]) -> BulkResult:
        items = await self.repository.get_many(item_ids)
        dimensions = [(item.campus, item.letter) for item in items]

        count = await self.repository.bulk_delete(item_ids)
        await self.repository.commit()

        invalidated = await self._invalidate_for(dimensions)
        logger.info(
            "Bulk delete completed",
            requested=len(item_ids),
            count=count,
            invalidated_count=invalidated,
        )
        return BulkResult(operation="delete", count=count, invalidated_count=invalidated)

    async def bulk_update(
        self, item_ids: Sequence[int], changes: Mapping[str, Any]
    ) -> BulkResult:
        items = await self.repository.get_many(item_ids)
        new_campus = changes.get("campus")
        new_letter = changes.get("letter")

        dimensions: List[RecordDimensions] = []
        for item in items:
            dimensions.append((item.campus, item.letter))
            dimensions.append((new_campus or item.campus, new_letter or item.letter))

        count = await self.repository.bulk_update(item_ids, changes)
        await self.repository.commit()

        invalidated = await self._invalidate_for(dimensions)
        logger.info(
            "Bulk update completed",
            requested=len(item_ids),
            count=count,
            fields=sorted(k for k, v in changes.items() if v is not None),
            invalidated_count=invalidated,
        )
        return BulkResult(operation="update", count=count, invalidated_count=invalidated)

    def keys_for(self, dimensions: Iterable[RecordDimensions]) -> List[str]:
        """Deduplicated listing keys that could contain records with these dimensions."""
        keys: List[str] = [str(CacheKey.all_items(self.namespace))]
        seen: Set[RecordDimensions] = set()
        for campus, letter in dimensions:
            if (campus, letter) in seen:
                continue
            seen.add((campus, letter))
            keys.extend(
                str(key) for key in CacheKey.record_keys(self.namespace, campus, letter)
            )
        return list(dict.fromkeys(keys))

    async def _search_keys(self) -> List[str]:
        """Cached search listings; any search may match a changed title."""
        search_keys = []
        for key in await self.cache.find_keys(f"{self.namespace}:*"):
            parts = CacheKey.parse_listing(key, self.namespace)
            if parts is not None and parts.key_type is ListingKeyType.SEARCH:
                search_keys.append(key)
        return search_keys

    async def _invalidate_for(self, dimensions: Iterable[RecordDimensions]) -> int:
        keys = self.keys_for(dimensions)
        keys.extend(await self._search_keys())
        keys.append(str(CacheKey.dashboard_stats()))

        result = await self.cache.invalidate(InvalidationSelector.for_keys(keys))
        return result.invalidated_count

    # Statistics

    async def dashboard_stats(self) -> Dict[str, Any]:
        """Totals for the admin dashboard, cached for a short period."""

        async def populate() -> Dict[str, Any]:
            now = get_current_timestamp()
            return {
                "total_items": await self.repository.count(),
                "campus_counts": await self.repository.count_by_campus(),
                "recent_items": await self.repository.count_created_since(
                    now - RECENT_ITEMS_WINDOW
                ),
                "last_updated": now.isoformat(),
            }

        return await self.cache.get_or_populate(
            CacheKey.dashboard_stats(), populate, self.stats_ttl_seconds
        )
