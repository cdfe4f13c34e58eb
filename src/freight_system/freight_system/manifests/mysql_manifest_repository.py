from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ManifestAuditAction, ManifestType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_decimal
from .model import Manifest, ManifestAudit
from .repository import ManifestRepository

_COLUMNS = "manifest_id, name, manifest_number, type, is_open, exchange_rate, shipment_date"


def _row_to_manifest(row: dict) -> Manifest:
    return Manifest(
        manifest_id=int(row["manifest_id"]),
        name=row["name"],
        manifest_number=row.get("manifest_number"),
        type=ManifestType(row["type"]),
        is_open=bool(row["is_open"]),
        exchange_rate=to_decimal(row.get("exchange_rate"), default=None),
        shipment_date=row.get("shipment_date"),
    )


class MySQLManifestRepository(ManifestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, manifest_id: int) -> Optional[Manifest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM manifests WHERE manifest_id=%s", (manifest_id,))
            row = fetchone(cur)
            return _row_to_manifest(row) if row else None

    def list_all(self, *, limit: int = 200) -> Sequence[Manifest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM manifests ORDER BY is_open DESC, shipment_date DESC, manifest_id DESC LIMIT %s",
                (int(limit),),
            )
            return [_row_to_manifest(r) for r in fetchall(cur)]

    def set_open(self, manifest_id: int, *, is_open: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE manifests SET is_open=%s WHERE manifest_id=%s", (1 if is_open else 0, manifest_id))
            return cur.rowcount > 0

    def add_audit(
        self,
        *,
        manifest_id: int,
        user_id: Optional[int],
        action: ManifestAuditAction,
        reason: str,
        performed_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO manifest_audits(manifest_id, user_id, action, reason, performed_at)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (manifest_id, user_id, action.value, reason, performed_at),
            )
            return int(cur.lastrowid)

    def list_audits(self, manifest_id: int, *, limit: int = 50) -> Sequence[ManifestAudit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT audit_id, manifest_id, user_id, action, reason, performed_at
                FROM manifest_audits
                WHERE manifest_id=%s
                ORDER BY performed_at DESC, audit_id DESC
                LIMIT %s
                """,
                (manifest_id, int(limit)),
            )
            return [
                ManifestAudit(
                    audit_id=int(r["audit_id"]),
                    manifest_id=int(r["manifest_id"]),
                    user_id=r.get("user_id"),
                    action=ManifestAuditAction(r["action"]),
                    reason=r["reason"],
                    performed_at=r["performed_at"],
                )
                for r in fetchall(cur)
            ]
