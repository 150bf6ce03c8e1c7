"""
Index item endpoints.

Listing is public and served from the read-through cache. Mutations require
an admin session and a CSRF token.
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ..deps import get_index_item_service, require_admin_session, verify_csrf
from ..schemas import IndexItemCreate, IndexItemQuery, IndexItemRead, IndexItemUpdate
from ...services.index_items import IndexItemService

logger = structlog.get_logger()
router = APIRouter(prefix="/index-items", tags=["index-items"])


def listing_query(
    campus: Optional[str] = Query(None, max_length=100, description="Campus name or code"),
    letter: Optional[str] = Query(None, max_length=1, description="Index letter"),
    search: Optional[str] = Query(None, max_length=100, description="Title search"),
) -> IndexItemQuery:
    try:
        return IndexItemQuery(campus=campus, letter=letter, search=search)
    except ValidationError as e:
        raise RequestValidationError(
            e.errors(include_url=False, include_context=False)
        ) from e


@router.get("", response_model=List[IndexItemRead])
async def list_index_items(
    query: IndexItemQuery = Depends(listing_query),
    service: IndexItemService = Depends(get_index_item_service),
):
    return await service.list_filtered(
        campus=query.campus, letter=query.letter, search=query.search
    )


@router.get("/{item_id}", response_model=IndexItemRead)
async def get_index_item(
    item_id: int, service: IndexItemService = Depends(get_index_item_service)
):
    return await service.get_item(item_id)


@router.post(
    "",
    response_model=IndexItemRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)
async def create_index_item(
    payload: IndexItemCreate,
    service: IndexItemService = Depends(get_index_item_service),
    user_email: str = Depends(require_admin_session),
):
    item = await service.create_item(payload.model_dump())
    logger.info("Index item created via API", item_id=item["id"], user=user_email)
    return item


@router.patch(
    "/{item_id}",
    response_model=IndexItemRead,
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)
async def update_index_item(
    item_id: int,
    payload: IndexItemUpdate,
    service: IndexItemService = Depends(get_index_item_service),
    user_email: str = Depends(require_admin_session),
):
    item = await service.update_item(item_id, payload.changes())
    logger.info("Index item updated via API", item_id=item_id, user=user_email)
    return item


@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)
async def delete_index_item(
    item_id: int,
    service: IndexItemService = Depends(get_index_item_service),
    user_email: str = Depends(require_admin_session),
):
    await service.delete_item(item_id)
    logger.info("Index item deleted via API", item_id=item_id, user=user_email)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
