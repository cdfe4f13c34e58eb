from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import PackageStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json, to_decimal
from .model import ConsolidatedPackage, ConsolidatedTotals, ConsolidationHistory
from .repository import ConsolidationRepository

_COLUMNS = """
    consolidated_package_id, consolidated_tracking_number, customer_id, created_by,
    total_weight, total_quantity, total_freight_price, total_clearance_fee,
    total_storage_fee, total_delivery_fee, status, consolidated_at,
    unconsolidated_at, is_active, notes
"""


def _row_to_group(row: dict) -> ConsolidatedPackage:
    return ConsolidatedPackage(
        consolidated_package_id=int(row["consolidated_package_id"]),
        consolidated_tracking_number=row["consolidated_tracking_number"],
        customer_id=int(row["customer_id"]),
        created_by=row.get("created_by"),
        total_weight=to_decimal(row.get("total_weight")),
        total_quantity=int(row.get("total_quantity") or 0),
        total_freight_price=to_decimal(row.get("total_freight_price")),
        total_clearance_fee=to_decimal(row.get("total_clearance_fee")),
        total_storage_fee=to_decimal(row.get("total_storage_fee")),
        total_delivery_fee=to_decimal(row.get("total_delivery_fee")),
        status=PackageStatus(row["status"]),
        consolidated_at=row["consolidated_at"],
        unconsolidated_at=row.get("unconsolidated_at"),
        is_active=bool(row.get("is_active")),
        notes=row.get("notes"),
    )


class MySQLConsolidationRepository(ConsolidationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, consolidated_package_id: int) -> Optional[ConsolidatedPackage]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM consolidated_packages WHERE consolidated_package_id=%s",
                (consolidated_package_id,),
            )
            row = fetchone(cur)
            return _row_to_group(row) if row else None

    def tracking_number_exists(self, tracking_number: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM consolidated_packages WHERE consolidated_tracking_number=%s LIMIT 1",
                (tracking_number,),
            )
            return fetchone(cur) is not None

    def count_created_on(self, day: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM consolidated_packages WHERE DATE(created_at)=%s", (day,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def create(
        self,
        *,
        tracking_number: str,
        customer_id: int,
        created_by: Optional[int],
        totals: ConsolidatedTotals,
        status: PackageStatus,
        consolidated_at: datetime,
        notes: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO consolidated_packages(
                    consolidated_tracking_number, customer_id, created_by,
                    total_weight, total_quantity, total_freight_price, total_clearance_fee,
                    total_storage_fee, total_delivery_fee, status, consolidated_at, is_active, notes
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 1, %s)
                """,
                (
                    tracking_number,
                    customer_id,
                    created_by,
                    totals.weight,
                    totals.quantity,
                    totals.freight_price,
                    totals.clearance_fee,
                    totals.storage_fee,
                    totals.delivery_fee,
                    status.value,
                    consolidated_at,
                    notes,
                ),
            )
            return int(cur.lastrowid)

    def update_status(self, consolidated_package_id: int, status: PackageStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE consolidated_packages SET status=%s WHERE consolidated_package_id=%s",
                (status.value, consolidated_package_id),
            )
            return cur.rowcount > 0

    def deactivate(self, consolidated_package_id: int, *, unconsolidated_at: datetime, notes: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE consolidated_packages
                SET is_active=0, unconsolidated_at=%s, notes=%s
                WHERE consolidated_package_id=%s
                """,
                (unconsolidated_at, notes, consolidated_package_id),
            )
            return cur.rowcount > 0

    def list_active_for_customer(self, customer_id: int) -> Sequence[ConsolidatedPackage]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM consolidated_packages
                WHERE customer_id=%s AND is_active=1
                ORDER BY consolidated_at DESC
                """,
                (customer_id,),
            )
            return [_row_to_group(r) for r in fetchall(cur)]

    def add_history(
        self,
        *,
        consolidated_package_id: int,
        action: str,
        performed_by: Optional[int],
        details: Optional[dict],
        performed_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO consolidation_history(consolidated_package_id, action, performed_by, details, performed_at)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (consolidated_package_id, action, performed_by, dump_json(details), performed_at),
            )
            return int(cur.lastrowid)

    def list_history(self, consolidated_package_id: int, *, action: Optional[str] = None) -> Sequence[ConsolidationHistory]:
        sql = """
            SELECT history_id, consolidated_package_id, action, performed_by, details, performed_at
            FROM consolidation_history
            WHERE consolidated_package_id=%s
        """
        params: list = [consolidated_package_id]
        if action:
            sql += " AND action=%s"
            params.append(action)
        sql += " ORDER BY performed_at DESC, history_id DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [
                ConsolidationHistory(
                    history_id=int(r["history_id"]),
                    consolidated_package_id=int(r["consolidated_package_id"]),
                    action=r["action"],
                    performed_by=r.get("performed_by"),
                    performed_at=r["performed_at"],
                    details=load_json(r.get("details")),
                )
                for r in fetchall(cur)
            ]
