from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import BACKUP_HEALTHY_SUCCESS_RATE, BACKUP_MAX_AGE_DAYS, BACKUP_RECENT_DAYS
from ..core.enums import BackupStatus, BackupType
from ..core.exceptions import BackupError
from .handlers import DatabaseBackupHandler, FileBackupHandler
from .model import Backup, split_file_paths
from .repository import BackupRepository
from .settings import BackupSettings
from .storage import BackupStorageManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackupResult:
    success: bool
    message: str
    backup: Optional[Backup] = None
    type: Optional[str] = None
    file_path: Optional[str] = None
    file_size: int = 0
    duration: float = 0.0


@dataclass(frozen=True)
class BackupStatusReport:
    checked_at: datetime
    total_backups: int = 0
    recent_backups: int = 0
    successful_backups: int = 0
    failed_backups: int = 0
    pending_backups: int = 0
    last_backup: Optional[Backup] = None
    last_successful_backup_date: Optional[datetime] = None
    storage_usage: dict = field(default_factory=dict)
    storage_path: str = ""
    retention_policy: dict = field(default_factory=dict)

    @property
    def last_backup_date(self) -> Optional[datetime]:
        return self.last_backup.created_at if self.last_backup else None

    @property
    def success_rate(self) -> Optional[float]:
        if not self.recent_backups:
            return None
        return round(self.successful_backups / self.recent_backups * 100, 1)

    def get_health_issues(self) -> list[str]:
        issues = []
        if self.last_successful_backup_date is None:
            issues.append("No successful backups found")
        else:
            age = (self.checked_at - self.last_successful_backup_date).days
            if age > BACKUP_MAX_AGE_DAYS:
                issues.append(f"Last backup was {age} days ago")

        rate = self.success_rate
        if rate is not None and rate < BACKUP_HEALTHY_SUCCESS_RATE:
            issues.append(f"Success rate is low ({rate:g}%)")
        return issues

    def is_healthy(self) -> bool:
        return not self.get_health_issues()


class BackupService:
    def __init__(
        self,
        backups: BackupRepository,
        database_handler: DatabaseBackupHandler,
        file_handler: FileBackupHandler,
        storage: BackupStorageManager,
        settings: BackupSettings,
        *,
        clock: Callable[[], datetime] = now_local,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._backups = backups
        self._db_handler = database_handler
        self._file_handler = file_handler
        self._storage = storage
        self._settings = settings
        self._clock = clock
        self._sleep = sleep

    def _with_retry(self, label: str, fn: Callable[[], Path]) -> Path:
        attempts = self._settings.retry_attempts + 1
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                return fn()
            except BackupError as e:
                last_error = e
                logger.warning("%s backup attempt %d failed: %s", label, attempt, e)
                if attempt < attempts:
                    self._sleep(self._settings.retry_delay_seconds)
        raise BackupError(f"{label} backup failed after {attempts} attempts: {last_error}")

    def _database_dump(self) -> Path:
        path = self._db_handler.create_dump()
        if not self._db_handler.validate_dump(path):
            raise BackupError("Database backup validation failed")
        return path

    def _directory_archive(self, directory: str) -> Path:
        path = self._file_handler.backup_directory(directory)
        if not self._file_handler.validate_archive(path):
            raise BackupError(f"File backup validation failed for: {directory}")
        return path

    def create_manual_backup(
        self,
        backup_type: str = "full",
        name: Optional[str] = None,
        *,
        created_by: Optional[int] = None,
    ) -> BackupResult:
        try:
            kind = BackupType(backup_type)
        except ValueError:
            return BackupResult(False, "Invalid backup type. Must be: database, files, or full")

        started = time.monotonic()
        now = self._clock()
        name = name or f"manual_backup_{kind.value}_{now:%Y-%m-%d_%H-%M-%S}"
        include_database = kind in (BackupType.DATABASE, BackupType.FULL)
        include_files = kind in (BackupType.FILES, BackupType.FULL)
        metadata = {"include_database": include_database, "include_files": include_files, "manual": True}

        backup_id = self._backups.create(
            name=name, backup_type=kind, created_by=created_by, metadata=metadata, created_at=now
        )
        logger.info("Starting %s backup %s (%s)", kind.value, backup_id, name)

        try:
            paths: dict = {}
            total_size = 0
            if include_database:
                db_path = self._with_retry("Database", self._database_dump)
                paths["database"] = str(db_path)
                total_size += db_path.stat().st_size
            if include_files:
                archives = []
                for directory in self._settings.directories:
                    if not Path(directory).exists():
                        logger.warning("Skipping missing backup directory %s", directory)
                        continue
                    archive = self._with_retry("File", lambda d=directory: self._directory_archive(d))
                    archives.append(str(archive))
                    total_size += archive.stat().st_size
                paths["files"] = archives
        except BackupError as e:
            self._backups.mark_failed(
                backup_id, metadata={**metadata, "error": str(e), "failed_at": self._clock().isoformat()}
            )
            logger.error("Backup %s failed: %s", backup_id, e)
            return BackupResult(
                False,
                f"Backup failed: {e}",
                backup=self._backups.get_by_id(backup_id),
                type=kind.value,
                duration=round(time.monotonic() - started, 2),
            )

        # Single-artifact backups keep a plain path; full backups keep the JSON map.
        if kind == BackupType.DATABASE:
            file_path = paths["database"]
        elif kind == BackupType.FILES and len(paths["files"]) == 1:
            file_path = paths["files"][0]
        else:
            file_path = json.dumps(paths)

        completed_at = self._clock()
        self._backups.mark_completed(
            backup_id,
            file_path=file_path,
            file_size=total_size,
            completed_at=completed_at,
            metadata={**metadata, "backup_paths": paths, "total_size": total_size},
        )
        logger.info("Backup %s completed (%d bytes)", backup_id, total_size)
        return BackupResult(
            True,
            "Backup completed successfully",
            backup=self._backups.get_by_id(backup_id),
            type=kind.value,
            file_path=file_path,
            file_size=total_size,
            duration=round(time.monotonic() - started, 2),
        )

    def get_backup_history(self, limit: int = 50) -> Sequence[Backup]:
        return self._backups.list_recent(limit=int(limit))

    def get_backup_status(self) -> BackupStatusReport:
        now = self._clock()
        recent = self._backups.list_since(now - timedelta(days=BACKUP_RECENT_DAYS))
        last_success = self._backups.latest(status=BackupStatus.COMPLETED)
        return BackupStatusReport(
            checked_at=now,
            total_backups=self._backups.count(),
            recent_backups=len(recent),
            successful_backups=sum(1 for b in recent if b.status == BackupStatus.COMPLETED),
            failed_backups=sum(1 for b in recent if b.status == BackupStatus.FAILED),
            pending_backups=self._backups.count(status=BackupStatus.PENDING),
            last_backup=self._backups.latest(),
            last_successful_backup_date=last_success.created_at if last_success else None,
            storage_usage=self._storage.get_storage_usage(),
            storage_path=str(self._settings.storage_path),
            retention_policy=self._settings.retention_days(),
        )

    def validate_backup_integrity(self, backup_path: str) -> bool:
        """Check every artifact behind a stored file_path (plain path or JSON map)."""
        paths = split_file_paths(backup_path)
        if not paths:
            return False
        for raw in paths:
            path = Path(raw)
            if not path.is_file():
                return False
            if path.suffix == ".sql":
                ok = self._db_handler.validate_dump(path)
            elif path.suffix == ".zip":
                ok = self._file_handler.validate_archive(path)
            else:
                ok = False
            if not ok:
                return False
        return True
