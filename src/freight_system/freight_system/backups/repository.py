from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import BackupStatus, BackupType
from .model import Backup


class BackupRepository(Protocol):
    def create(
        self,
        *,
        name: str,
        backup_type: BackupType,
        created_by: Optional[int],
        metadata: dict,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, backup_id: int) -> Optional[Backup]:
        raise NotImplementedError

    def mark_completed(
        self,
        backup_id: int,
        *,
        file_path: str,
        file_size: int,
        completed_at: datetime,
        metadata: dict,
    ) -> bool:
        raise NotImplementedError

    def mark_failed(self, backup_id: int, *, metadata: dict) -> bool:
        raise NotImplementedError

    def mark_cleaned_up(self, backup_id: int) -> bool:
        raise NotImplementedError

    def list_recent(self, *, limit: int) -> Sequence[Backup]:
        raise NotImplementedError

    def list_since(self, since: datetime) -> Sequence[Backup]:
        raise NotImplementedError

    def count(self, *, status: Optional[BackupStatus] = None) -> int:
        raise NotImplementedError

    def latest(self, *, status: Optional[BackupStatus] = None) -> Optional[Backup]:
        raise NotImplementedError

    def list_completed_before(self, backup_type: BackupType, cutoff: datetime) -> Sequence[Backup]:
        """Completed backups of a type created before cutoff, oldest first."""
        raise NotImplementedError
