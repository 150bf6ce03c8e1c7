"""
Index Item Backups

Daily JSON snapshots of the index with a CSV companion file, listed,
downloaded and pruned through the admin API.
"""

import asyncio
import csv
import hashlib
import io
import json
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import aiofiles
import structlog

from ..constants import get_current_timestamp

logger = structlog.get_logger()

BACKUP_FILENAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+\.json$")
BACKUP_DATE_PATTERN = re.compile(r"^backup-(\d{4}-\d{2}-\d{2})\.json$")
MAX_FILENAME_LENGTH = 255
CSV_COLUMNS = ("id", "title", "letter", "url", "campus", "createdAt", "updatedAt")


@dataclass
class BackupInfo:
    """Backup file metadata."""

    filename: str
    size_bytes: int
    created_at: datetime
    total_records: Optional[int] = None
    checksum: str = ""
    has_csv: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "size_bytes": self.size_bytes,
            "created_at": self.created_at.isoformat(),
            "total_records": self.total_records,
            "checksum": self.checksum,
            "has_csv": self.has_csv,
        }


def validate_backup_filename(filename: str) -> str:
    """Reject anything that is not a plain ``.json`` file name."""
    if (
        not filename
        or len(filename) > MAX_FILENAME_LENGTH
        or not BACKUP_FILENAME_PATTERN.match(filename)
        or filename.startswith(".")
    ):
        raise ValueError(f"Invalid backup filename: {filename!r}")
    return filename


def _isoformat(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if isinstance(value, datetime) else str(value)


def render_csv(records: Sequence[Mapping[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for record in records:
        writer.writerow(
            [
                record["id"],
                record["title"],
                record["letter"],
                record["url"],
                record["campus"],
                _isoformat(record.get("created_at")) or "",
                _isoformat(record.get("updated_at")) or "",
            ]
        )
    return buffer.getvalue()


class BackupManager:
    """
    File-based backup manager.

    Backups are named ``backup-YYYY-MM-DD.json``; a second backup on the
    same day replaces the first.
    """

    def __init__(
        self,
        backup_directory: str,
        retention_days: int = 30,
        clock: Callable[[], datetime] = get_current_timestamp,
    ):
        self.backup_directory = backup_directory
        self.retention_days = retention_days
        self._clock = clock

    @classmethod
    def from_settings(cls, settings) -> "BackupManager":
        return cls(settings.BACKUP_DIRECTORY, settings.BACKUP_RETENTION_DAYS)

    def _path(self, filename: str) -> str:
        return os.path.join(self.backup_directory, filename)

    async def _calculate_checksum(self, file_path: str) -> str:
        """Calculate SHA-256 checksum of a backup file."""
        sha256_hash = hashlib.sha256()

        async with aiofiles.open(file_path, "rb") as f:
            while True:
                chunk = await f.read(1024 * 1024)
                if not chunk:
                    break
                sha256_hash.update(chunk)

        return sha256_hash.hexdigest()

    async def create_backup(self, records: Sequence[Mapping[str, Any]]) -> BackupInfo:
        """
        Write a JSON backup and its CSV companion.

        Args:
            records: Index item rows including ``created_at``/``updated_at``

        Returns:
            Metadata of the written JSON file
        """
        now = self._clock()
        stem = f"backup-{now.strftime('%Y-%m-%d')}"
        json_file = self._path(f"{stem}.json")
        csv_file = self._path(f"{stem}.csv")

        ordered = sorted(records, key=lambda record: record["id"])
        document = {
            "index_items": [
                {
                    **record,
                    "created_at": _isoformat(record.get("created_at")),
                    "updated_at": _isoformat(record.get("updated_at")),
                }
                for record in ordered
            ],
            "backup_date": now.isoformat(),
            "total_records": len(ordered),
        }

        try:
            await asyncio.to_thread(os.makedirs, self.backup_directory, exist_ok=True)

            async with aiofiles.open(json_file, "w") as f:
                await f.write(json.dumps(document, indent=2, default=str))
            async with aiofiles.open(csv_file, "w", newline="") as f:
                await f.write(render_csv(ordered))

            info = BackupInfo(
                filename=f"{stem}.json",
                size_bytes=os.path.getsize(json_file),
                created_at=now,
                total_records=len(ordered),
                checksum=await self._calculate_checksum(json_file),
                has_csv=True,
            )

        except Exception as e:
            logger.error(
                "Backup creation failed",
                backup_file=json_file,
                error=str(e),
                exc_info=True,
            )
            raise

        logger.info(
            "Backup completed",
            filename=info.filename,
            total_records=info.total_records,
            size_bytes=info.size_bytes,
        )
        return info

    async def list_backups(self) -> List[BackupInfo]:
        """Backups newest first."""
        if not os.path.isdir(self.backup_directory):
            return []

        backups = []
        for filename in await asyncio.to_thread(os.listdir, self.backup_directory):
            if not BACKUP_FILENAME_PATTERN.match(filename):
                continue
            stat = await asyncio.to_thread(os.stat, self._path(filename))
            backups.append(
                BackupInfo(
                    filename=filename,
                    size_bytes=stat.st_size,
                    created_at=datetime.fromtimestamp(stat.st_mtime).astimezone(),
                    has_csv=os.path.exists(self._path(filename[: -len(".json")] + ".csv")),
                )
            )
        return sorted(backups, key=lambda backup: backup.filename, reverse=True)

    async def read_backup(self, filename: str) -> Dict[str, Any]:
        """
        Load a backup document.

        Raises:
            ValueError: If the file name is not a valid backup name
            FileNotFoundError: If the backup does not exist
        """
        path = self._path(validate_backup_filename(filename))
        async with aiofiles.open(path, "r") as f:
            return json.loads(await f.read())

    async def delete_backup(self, filename: str) -> bool:
        """Delete a backup and its CSV companion; False if it did not exist."""
        path = self._path(validate_backup_filename(filename))
        if not os.path.exists(path):
            return False

        await asyncio.to_thread(os.remove, path)
        csv_path = path[: -len(".json")] + ".csv"
        if os.path.exists(csv_path):
            await asyncio.to_thread(os.remove, csv_path)

        logger.info("Backup deleted", filename=filename)
        return True

    async def cleanup_old_backups(self) -> List[str]:
        """Remove dated backups older than the retention period."""
        if not os.path.isdir(self.backup_directory):
            return []

        cutoff = self._clock() - timedelta(days=self.retention_days)
        removed = []
        for filename in sorted(await asyncio.to_thread(os.listdir, self.backup_directory)):
            match = BACKUP_DATE_PATTERN.match(filename)
            if not match:
                continue
            backup_date = datetime.strptime(match.group(1), "%Y-%m-%d").replace(
                tzinfo=cutoff.tzinfo
            )
            if backup_date < cutoff:
                await self.delete_backup(filename)
                removed.append(filename)

        if removed:
            logger.info("Cleaned up old backups", removed_count=len(removed))
        return removed
