from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..core.enums import AuditEventType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, in_clause, load_json
from .model import AuditFilters, AuditLog
from .repository import AuditLogRepository

_COLUMNS = """
    audit_log_id, user_id, event_type, action, auditable_type, auditable_id,
    old_values, new_values, url, ip_address, user_agent, additional_data, created_at
"""


def _row_to_log(row: dict) -> AuditLog:
    return AuditLog(
        audit_log_id=int(row["audit_log_id"]),
        user_id=row.get("user_id"),
        event_type=AuditEventType(row["event_type"]),
        action=row["action"],
        auditable_type=row.get("auditable_type"),
        auditable_id=row.get("auditable_id"),
        old_values=load_json(row.get("old_values")),
        new_values=load_json(row.get("new_values")),
        url=row.get("url"),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        additional_data=load_json(row.get("additional_data")),
        created_at=row["created_at"],
    )


class MySQLAuditLogRepository(AuditLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: Optional[int],
        event_type: AuditEventType,
        action: str,
        auditable_type: Optional[str],
        auditable_id: Optional[int],
        old_values: Optional[dict],
        new_values: Optional[dict],
        url: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
        additional_data: Optional[dict],
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(
                    user_id, event_type, action, auditable_type, auditable_id,
                    old_values, new_values, url, ip_address, user_agent, additional_data, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    event_type.value,
                    action,
                    auditable_type,
                    auditable_id,
                    dump_json(old_values),
                    dump_json(new_values),
                    url,
                    ip_address,
                    user_agent,
                    dump_json(additional_data),
                    created_at,
                ),
            )
            return int(cur.lastrowid)

    def search(self, filters: AuditFilters, *, limit: int) -> Sequence[AuditLog]:
        where: list[str] = []
        params: list = []

        if filters.search:
            where.append("(action LIKE %s OR auditable_type LIKE %s OR ip_address LIKE %s)")
            like = f"%{filters.search}%"
            params.extend([like, like, like])
        if filters.event_type:
            where.append("event_type=%s")
            params.append(filters.event_type.value)
        if filters.action:
            where.append("action=%s")
            params.append(filters.action)
        if filters.user_id:
            where.append("user_id=%s")
            params.append(filters.user_id)
        if filters.auditable_type:
            where.append("auditable_type=%s")
            params.append(filters.auditable_type)
        if filters.auditable_id:
            where.append("auditable_id=%s")
            params.append(filters.auditable_id)
        if filters.ip_address:
            where.append("ip_address=%s")
            params.append(filters.ip_address)
        if filters.date_from:
            where.append("created_at >= %s")
            params.append(datetime.combine(filters.date_from, datetime.min.time()))
        if filters.date_to:
            where.append("created_at < %s")
            params.append(datetime.combine(filters.date_to, datetime.min.time()) + timedelta(days=1))

        sql = f"SELECT {_COLUMNS} FROM audit_logs"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, audit_log_id DESC LIMIT %s"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_log(r) for r in fetchall(cur)]

    def count_older_than(self, *, event_types: Sequence[AuditEventType], cutoff: datetime) -> int:
        if not event_types:
            return 0
        values = [e.value for e in event_types]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS c FROM audit_logs WHERE event_type IN ({in_clause(values)}) AND created_at < %s",
                (*values, cutoff),
            )
            row = fetchone(cur)
            return int(row["c"]) if row else 0

    def oldest_before(self, *, event_types: Sequence[AuditEventType], cutoff: datetime) -> Optional[datetime]:
        if not event_types:
            return None
        values = [e.value for e in event_types]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT MIN(created_at) AS oldest FROM audit_logs WHERE event_type IN ({in_clause(values)}) AND created_at < %s",
                (*values, cutoff),
            )
            row = fetchone(cur)
            return row["oldest"] if row else None

    def delete_older_than(self, *, event_types: Sequence[AuditEventType], cutoff: datetime) -> int:
        if not event_types:
            return 0
        values = [e.value for e in event_types]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"DELETE FROM audit_logs WHERE event_type IN ({in_clause(values)}) AND created_at < %s",
                (*values, cutoff),
            )
            return int(cur.rowcount)
