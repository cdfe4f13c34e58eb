from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import BackupStatus, BackupType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import Backup
from .repository import BackupRepository

_COLUMNS = "backup_id, name, type, file_path, file_size, status, created_by, metadata, created_at, completed_at"


def _row_to_backup(row: dict) -> Backup:
    return Backup(
        backup_id=int(row["backup_id"]),
        name=row["name"],
        type=BackupType(row["type"]),
        status=BackupStatus(row["status"]),
        created_at=row["created_at"],
        file_path=row.get("file_path"),
        file_size=int(row.get("file_size") or 0),
        created_by=row.get("created_by"),
        metadata=load_json(row.get("metadata")),
        completed_at=row.get("completed_at"),
    )


class MySQLBackupRepository(BackupRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _list(self, where: str, params: tuple, suffix: str) -> Sequence[Backup]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM backups WHERE {where} {suffix}", params)
            return [_row_to_backup(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        name: str,
        backup_type: BackupType,
        created_by: Optional[int],
        metadata: dict,
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO backups(name, type, file_path, file_size, status, created_by, metadata, created_at)
                VALUES (%s, %s, '', 0, %s, %s, %s, %s)
                """,
                (name, backup_type.value, BackupStatus.PENDING.value, created_by, dump_json(metadata), created_at),
            )
            return int(cur.lastrowid)

    def get_by_id(self, backup_id: int) -> Optional[Backup]:
        rows = self._list("backup_id=%s", (backup_id,), "")
        return rows[0] if rows else None

    def mark_completed(
        self,
        backup_id: int,
        *,
        file_path: str,
        file_size: int,
        completed_at: datetime,
        metadata: dict,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE backups
                SET status=%s, file_path=%s, file_size=%s, completed_at=%s, metadata=%s
                WHERE backup_id=%s
                """,
                (BackupStatus.COMPLETED.value, file_path, int(file_size), completed_at, dump_json(metadata), backup_id),
            )
            return cur.rowcount > 0

    def mark_failed(self, backup_id: int, *, metadata: dict) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE backups SET status=%s, metadata=%s WHERE backup_id=%s",
                (BackupStatus.FAILED.value, dump_json(metadata), backup_id),
            )
            return cur.rowcount > 0

    def mark_cleaned_up(self, backup_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE backups SET status=%s WHERE backup_id=%s",
                (BackupStatus.CLEANED_UP.value, backup_id),
            )
            return cur.rowcount > 0

    def list_recent(self, *, limit: int) -> Sequence[Backup]:
        return self._list("1=1", (), f"ORDER BY created_at DESC, backup_id DESC LIMIT {int(limit)}")

    def list_since(self, since: datetime) -> Sequence[Backup]:
        return self._list("created_at >= %s", (since,), "ORDER BY created_at DESC")

    def count(self, *, status: Optional[BackupStatus] = None) -> int:
        sql = "SELECT COUNT(*) AS cnt FROM backups"
        params: tuple = ()
        if status is not None:
            sql += " WHERE status=%s"
            params = (status.value,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def latest(self, *, status: Optional[BackupStatus] = None) -> Optional[Backup]:
        if status is None:
            rows = self._list("1=1", (), "ORDER BY created_at DESC, backup_id DESC LIMIT 1")
        else:
            rows = self._list("status=%s", (status.value,), "ORDER BY created_at DESC, backup_id DESC LIMIT 1")
        return rows[0] if rows else None

    def list_completed_before(self, backup_type: BackupType, cutoff: datetime) -> Sequence[Backup]:
        return self._list(
            "type=%s AND status=%s AND created_at < %s",
            (backup_type.value, BackupStatus.COMPLETED.value, cutoff),
            "ORDER BY created_at ASC",
        )
