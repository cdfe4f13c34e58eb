from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

DEFAULT_DATABASE_RETENTION_DAYS = 30
DEFAULT_FILES_RETENTION_DAYS = 14


@dataclass(frozen=True)
class BackupSettings:
    storage_path: Path
    database_retention_days: int = DEFAULT_DATABASE_RETENTION_DAYS
    files_retention_days: int = DEFAULT_FILES_RETENTION_DAYS
    directories: tuple[str, ...] = field(default_factory=tuple)
    mysqldump_binary: str = "mysqldump"
    timeout_seconds: int = 300
    retry_attempts: int = 1
    retry_delay_seconds: float = 5.0

    @classmethod
    def from_dict(cls, config: Mapping) -> "BackupSettings":
        retention = config.get("retention") or {}
        return cls(
            storage_path=Path(config.get("storage_path") or "storage/backups"),
            database_retention_days=int(retention.get("database_days") or DEFAULT_DATABASE_RETENTION_DAYS),
            files_retention_days=int(retention.get("files_days") or DEFAULT_FILES_RETENTION_DAYS),
            directories=tuple(config.get("directories") or ()),
            mysqldump_binary=str(config.get("mysqldump_binary") or "mysqldump"),
            timeout_seconds=int(config.get("timeout_seconds") or 300),
            retry_attempts=int(config.get("retry_attempts", 1)),
            retry_delay_seconds=float(config.get("retry_delay_seconds", 5.0)),
        )

    @property
    def database_dir(self) -> Path:
        return self.storage_path / "database"

    @property
    def files_dir(self) -> Path:
        return self.storage_path / "files"

    def retention_days(self) -> dict[str, int]:
        return {"database": self.database_retention_days, "files": self.files_retention_days}
