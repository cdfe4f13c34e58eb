from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import BackupStatus, BackupType


def split_file_paths(file_path: Optional[str]) -> list[str]:
    """All artifact paths behind a stored file_path.

    Single-artifact backups store a plain path; the rest store JSON, either a
    list or a ``{"database": path, "files": [paths]}`` map.
    """
    if not file_path:
        return []
    try:
        decoded = json.loads(file_path)
    except ValueError:
        return [file_path]
    if isinstance(decoded, dict):
        paths: list[str] = []
        for value in decoded.values():
            paths.extend(value if isinstance(value, list) else [value])
        return paths
    if isinstance(decoded, list):
        return [str(p) for p in decoded]
    return [file_path]


@dataclass(frozen=True)
class Backup:
    backup_id: int
    name: str
    type: BackupType
    status: BackupStatus
    created_at: datetime
    file_path: Optional[str] = None
    file_size: int = 0
    created_by: Optional[int] = None
    metadata: Optional[dict] = None
    completed_at: Optional[datetime] = None

    @property
    def file_paths(self) -> list[str]:
        return split_file_paths(self.file_path)
