"""
Backup management endpoints.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import get_backup_manager, get_repository, require_admin_session, verify_csrf
from ...repositories.index_item import IndexItemRepository
from ...services.backup import BackupManager, validate_backup_filename

logger = structlog.get_logger()
router = APIRouter(
    prefix="/admin/system/backups",
    tags=["backups"],
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)


@router.get("")
async def list_backups(
    manager: BackupManager = Depends(get_backup_manager),
) -> Dict[str, Any]:
    backups = await manager.list_backups()
    total_size = sum(backup.size_bytes for backup in backups)
    return {
        "backups": [backup.to_dict() for backup in backups],
        "stats": {
            "total_backups": len(backups),
            "total_size": total_size,
            "last_backup": backups[0].created_at.isoformat() if backups else None,
            "oldest_backup": backups[-1].created_at.isoformat() if backups else None,
            "avg_size": total_size / len(backups) if backups else 0,
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_backup(
    manager: BackupManager = Depends(get_backup_manager),
    repository: IndexItemRepository = Depends(get_repository),
    user_email: str = Depends(require_admin_session),
) -> Dict[str, Any]:
    items = await repository.list_items()
    records = [
        {**item.to_dict(), "created_at": item.created_at, "updated_at": item.updated_at}
        for item in items
    ]

    info = await manager.create_backup(records)
    removed = await manager.cleanup_old_backups()

    logger.info("Backup created via API", filename=info.filename, user=user_email)
    return {"backup": info.to_dict(), "removed": removed}


def _invalid_filename(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{filename}")
async def get_backup(
    filename: str, manager: BackupManager = Depends(get_backup_manager)
) -> Dict[str, Any]:
    try:
        validate_backup_filename(filename)
    except ValueError as e:
        raise _invalid_filename(e)

    try:
        return await manager.read_backup(filename)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Backup not found")


@router.delete("/{filename}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_backup(
    filename: str,
    manager: BackupManager = Depends(get_backup_manager),
    user_email: str = Depends(require_admin_session),
) -> None:
    try:
        deleted = await manager.delete_backup(filename)
    except ValueError as e:
        raise _invalid_filename(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Backup not found")
    logger.info("Backup deleted via API", filename=filename, user=user_email)
