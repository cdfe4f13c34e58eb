from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from ..common.datetime_utils import days_between, now_local
from ..common.formatting import format_bytes
from ..core.enums import BackupType
from .repository import BackupRepository
from .settings import BackupSettings

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    deleted_files: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    total_freed_space: int = 0
    retention: dict = field(default_factory=dict)
    dry_run: bool = False


class BackupStorageManager:
    """Retention enforcement and disk accounting for the backup directory."""

    def __init__(
        self,
        backups: BackupRepository,
        settings: BackupSettings,
        *,
        clock: Callable[[], datetime] = now_local,
        disk_usage: Callable = shutil.disk_usage,
    ):
        self._backups = backups
        self._settings = settings
        self._clock = clock
        self._disk_usage = disk_usage

    format_bytes = staticmethod(format_bytes)

    def cleanup_old_backups(self, dry_run: bool = False) -> CleanupResult:
        result = CleanupResult(retention=self._settings.retention_days(), dry_run=dry_run)
        now = self._clock()

        for backup_type in (BackupType.DATABASE, BackupType.FILES):
            cutoff = now - timedelta(days=result.retention[backup_type.value])
            for backup in self._backups.list_completed_before(backup_type, cutoff):
                paths = [Path(p) for p in backup.file_paths]
                try:
                    size = 0
                    for path in paths:
                        if path.is_file():
                            size += path.stat().st_size
                            if not dry_run:
                                path.unlink()
                    if not dry_run:
                        self._backups.mark_cleaned_up(backup.backup_id)
                except OSError as e:
                    verb = "analyze" if dry_run else "delete"
                    result.errors.append(f"Failed to {verb} {backup.file_path}: {e}")
                    logger.error("Backup cleanup failed for %s: %s", backup.file_path, e)
                    continue

                result.total_freed_space += size
                result.deleted_files.append(
                    {
                        "name": paths[0].name if len(paths) == 1 else backup.name,
                        "type": backup_type.value,
                        "size": size,
                        "age_days": days_between(backup.created_at, now),
                        "path": backup.file_path,
                    }
                )

        logger.info(
            "Backup cleanup%s: %d files, %s",
            " (dry run)" if dry_run else "",
            len(result.deleted_files),
            format_bytes(result.total_freed_space),
        )
        return result

    def get_storage_usage(self) -> dict:
        breakdown = {}
        total_files = 0
        total_size = 0
        for sub in ("database", "files"):
            directory = self._settings.storage_path / sub
            files = [p for p in directory.rglob("*") if p.is_file()] if directory.exists() else []
            size = sum(p.stat().st_size for p in files)
            breakdown[sub] = {"files": len(files), "size": size}
            total_files += len(files)
            total_size += size
        return {"total_files": total_files, "total_size": total_size, "breakdown": breakdown}

    def get_storage_info(self) -> dict:
        usage = self.get_storage_usage()
        path = self._settings.storage_path
        probe = path if path.exists() else Path(".")
        disk = self._disk_usage(str(probe))
        percent = round((disk.total - disk.free) / disk.total * 100, 1) if disk.total else 0.0
        return {
            "path": str(path),
            "total_files": usage["total_files"],
            "total_size": usage["total_size"],
            "available_space": disk.free,
            "disk_usage_percent": percent,
            "retention": self._settings.retention_days(),
            "breakdown": usage["breakdown"],
        }
