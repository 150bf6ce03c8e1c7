"""
Index Item Repository

Async SQLAlchemy queries for the ``index_items`` table. Listing queries are
always ordered by letter then title so cached results are stable.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import IndexItem

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("title", "letter", "url", "campus")


class IndexItemRepository:
    """
    Repository for index items.

    Mutations flush but do not commit; the caller commits via ``commit()``
    once it is ready for the write to become visible.
    """

    def __init__(self, session: AsyncSession):
        if not isinstance(session, AsyncSession):
            raise TypeError(
                f"session must be AsyncSession instance, got {type(session).__name__}"
            )
        self.session = session

    async def list_items(
        self,
        campus: Optional[str] = None,
        letter: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[IndexItem]:
        """
        List items filtered by any combination of campus, letter and a
        case-insensitive title search.
        """
        try:
            stmt = select(IndexItem)
            if campus:
                stmt = stmt.where(IndexItem.campus == campus)
            if letter:
                stmt = stmt.where(IndexItem.letter == letter)
            if search:
                stmt = stmt.where(IndexItem.title.ilike(f"%{_escape_like(search)}%", escape="\\"))
            stmt = stmt.order_by(IndexItem.letter.asc(), IndexItem.title.asc())

            result = await self.session.execute(stmt)
            items = list(result.scalars().all())

            logger.debug(
                "Repository: Index items listed",
                campus=campus,
                letter=letter,
                search=search,
                count=len(items),
            )
            return items

        except Exception as e:
            logger.error(
                "Repository: Failed to list index items",
                campus=campus,
                letter=letter,
                search=search,
                error=str(e),
                exc_info=True,
            )
            raise

    async def get(self, item_id: int) -> Optional[IndexItem]:
        try:
            result = await self.session.execute(
                select(IndexItem).where(IndexItem.id == item_id)
            )
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(
                "Repository: Failed to get index item",
                item_id=item_id,
                error=str(e),
                exc_info=True,
            )
            raise

    async def get_many(self, item_ids: Sequence[int]) -> List[IndexItem]:
        if not item_ids:
            return []
        try:
            result = await self.session.execute(
                select(IndexItem).where(IndexItem.id.in_(list(item_ids)))
            )
            return list(result.scalars().all())
        except Exception as e:
            logger.error(
                "Repository: Failed to get index items",
                item_ids=list(item_ids),
                error=str(e),
                exc_info=True,
            )
            raise

    async def create(self, data: Mapping[str, Any]) -> IndexItem:
        """Insert a new item and flush so its id is assigned."""
        item = IndexItem(**{field: data[field] for field in UPDATABLE_FIELDS})
        try:
            self.session.add(item)
            await self.session.flush()
            await self.session.refresh(item)

            logger.info("Repository: Index item created", item_id=item.id)
            return item

        except Exception as e:
            logger.error(
                "Repository: Failed to create index item",
                title=data.get("title"),
                error=str(e),
                exc_info=True,
            )
            raise

    async def update(self, item: IndexItem, changes: Mapping[str, Any]) -> IndexItem:
        """Apply a partial update to a loaded item."""
        try:
            for field, value in changes.items():
                if field in UPDATABLE_FIELDS and value is not None:
                    setattr(item, field, value)
            await self.session.flush()
            await self.session.refresh(item)

            logger.info(
                "Repository: Index item updated",
                item_id=item.id,
                fields=sorted(changes),
            )
            return item

        except Exception as e:
            logger.error(
                "Repository: Failed to update index item",
                item_id=item.id,
                error=str(e),
                exc_info=True,
            )
            raise

    async def delete(self, item: IndexItem) -> None:
        try:
            await self.session.delete(item)
            await self.session.flush()
            logger.info("Repository: Index item deleted", item_id=item.id)
        except Exception as e:
            logger.error(
                "Repository: Failed to delete index item",
                item_id=item.id,
                error=str(e),
                exc_info=True,
            )
            raise

    async def bulk_delete(self, item_ids: Sequence[int]) -> int:
        try:
            result = await self.session.execute(
                delete(IndexItem).where(IndexItem.id.in_(list(item_ids)))
            )
            logger.info("Repository: Index items bulk deleted", count=result.rowcount)
            return result.rowcount
        except Exception as e:
            logger.error(
                "Repository: Failed to bulk delete index items",
                item_ids=list(item_ids),
                error=str(e),
                exc_info=True,
            )
            raise

    async def bulk_update(
        self, item_ids: Sequence[int], changes: Mapping[str, Any]
    ) -> int:
        values: Dict[str, Any] = {
            field: value
            for field, value in changes.items()
            if field in UPDATABLE_FIELDS and value is not None
        }
        if not values:
            return 0
        try:
            result = await self.session.execute(
                update(IndexItem)
                .where(IndexItem.id.in_(list(item_ids)))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            logger.info(
                "Repository: Index items bulk updated",
                count=result.rowcount,
                fields=sorted(values),
            )
            return result.rowcount
        except Exception as e:
            logger.error(
                "Repository: Failed to bulk update index items",
                item_ids=list(item_ids),
                error=str(e),
                exc_info=True,
            )
            raise

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(IndexItem.id)))
        return result.scalar_one()

    async def count_by_campus(self) -> Dict[str, int]:
        result = await self.session.execute(
            select(IndexItem.campus, func.count(IndexItem.id))
            .group_by(IndexItem.campus)
            .order_by(IndexItem.campus)
        )
        return {campus: count for campus, count in result.all()}

    async def count_created_since(self, since: datetime) -> int:
        result = await self.session.execute(
            select(func.count(IndexItem.id)).where(IndexItem.created_at >= since)
        )
        return result.scalar_one()

    async def commit(self) -> None:
        """Commit pending changes so they are acknowledged by the database."""
        try:
            await self.session.commit()
        except Exception as e:
            logger.error(
                "Repository: Commit failed",
                error=str(e),
                exc_info=True,
            )
            await self.session.rollback()
            raise


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
