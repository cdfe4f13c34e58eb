from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import PackageStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_decimal
from .model import Package, PackageStatusHistory
from .repository import PackageRepository

_COLUMNS = """
    package_id, user_id, manifest_id, tracking_number, description, weight,
    length_inches, width_inches, height_inches, cubic_feet, status, estimated_value,
    freight_price, clearance_fee, storage_fee, delivery_fee,
    consolidated_package_id, is_consolidated, consolidated_at
"""


def _row_to_package(row: dict) -> Package:
    return Package(
        package_id=int(row["package_id"]),
        user_id=int(row["user_id"]),
        manifest_id=int(row["manifest_id"]),
        tracking_number=row["tracking_number"],
        description=row.get("description"),
        weight=to_decimal(row.get("weight"), default=None),
        length_inches=to_decimal(row.get("length_inches"), default=None),
        width_inches=to_decimal(row.get("width_inches"), default=None),
        height_inches=to_decimal(row.get("height_inches"), default=None),
        cubic_feet=to_decimal(row.get("cubic_feet"), default=None),
        status=PackageStatus(row["status"]),
        estimated_value=to_decimal(row.get("estimated_value"), default=None),
        freight_price=to_decimal(row.get("freight_price")),
        clearance_fee=to_decimal(row.get("clearance_fee")),
        storage_fee=to_decimal(row.get("storage_fee")),
        delivery_fee=to_decimal(row.get("delivery_fee")),
        consolidated_package_id=row.get("consolidated_package_id"),
        is_consolidated=bool(row.get("is_consolidated")),
        consolidated_at=row.get("consolidated_at"),
    )


class MySQLPackageRepository(PackageRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str = "", params: tuple = (), suffix: str = "ORDER BY package_id DESC") -> list[Package]:
        sql = f"SELECT {_COLUMNS} FROM packages"
        if where:
            sql += f" WHERE {where}"
        sql += f" {suffix}"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_row_to_package(r) for r in fetchall(cur)]

    def get_by_id(self, package_id: int) -> Optional[Package]:
        rows = self._select("package_id=%s", (package_id,), suffix="")
        return rows[0] if rows else None

    def get_many(self, package_ids: Sequence[int]) -> Sequence[Package]:
        ids = [int(i) for i in package_ids]
        if not ids:
            return []
        return self._select(f"package_id IN ({in_clause(ids)})", tuple(ids), suffix="ORDER BY package_id")

    def list_all(self, *, status: Optional[PackageStatus] = None, limit: int = 500) -> Sequence[Package]:
        if status:
            return self._select("status=%s", (status.value, int(limit)), suffix="ORDER BY package_id DESC LIMIT %s")
        return self._select("", (int(limit),), suffix="ORDER BY package_id DESC LIMIT %s")

    def list_for_manifest(self, manifest_id: int) -> Sequence[Package]:
        return self._select("manifest_id=%s", (manifest_id,))

    def list_for_customer(self, user_id: int) -> Sequence[Package]:
        return self._select("user_id=%s", (user_id,))

    def list_for_consolidated(self, consolidated_package_id: int) -> Sequence[Package]:
        return self._select("consolidated_package_id=%s", (consolidated_package_id,), suffix="ORDER BY package_id")

    def count_by_status(self) -> dict[PackageStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS c FROM packages GROUP BY status")
            return {PackageStatus(r["status"]): int(r["c"]) for r in fetchall(cur)}

    def manifest_delivery_counts(self, manifest_id: int) -> tuple[int, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN status <> %s THEN 1 ELSE 0 END), 0) AS not_delivered
                FROM packages
                WHERE manifest_id=%s
                """,
                (PackageStatus.DELIVERED.value, manifest_id),
            )
            row = fetchone(cur) or {"total": 0, "not_delivered": 0}
            return int(row["total"]), int(row["not_delivered"])

    def update_status(self, package_id: int, status: PackageStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE packages SET status=%s WHERE package_id=%s", (status.value, package_id))
            return cur.rowcount > 0

    def update_fees(
        self,
        package_id: int,
        *,
        clearance_fee: Decimal,
        storage_fee: Decimal,
        delivery_fee: Decimal,
        status: PackageStatus,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE packages
                SET clearance_fee=%s, storage_fee=%s, delivery_fee=%s, status=%s
                WHERE package_id=%s
                """,
                (clearance_fee, storage_fee, delivery_fee, status.value, package_id),
            )
            return cur.rowcount > 0

    def update_freight_price(self, package_id: int, freight_price: Decimal) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE packages SET freight_price=%s WHERE package_id=%s", (freight_price, package_id))
            return cur.rowcount > 0

    def set_consolidation(
        self,
        package_ids: Sequence[int],
        *,
        consolidated_package_id: Optional[int],
        consolidated_at: Optional[datetime],
    ) -> int:
        ids = [int(i) for i in package_ids]
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE packages
                SET consolidated_package_id=%s, is_consolidated=%s, consolidated_at=%s
                WHERE package_id IN ({in_clause(ids)})
                """,
                (consolidated_package_id, 1 if consolidated_package_id else 0, consolidated_at, *ids),
            )
            return int(cur.rowcount)

    def add_status_history(
        self,
        *,
        package_id: int,
        old_status: PackageStatus,
        new_status: PackageStatus,
        changed_by: Optional[int],
        changed_at: datetime,
        notes: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO package_status_history(package_id, old_status, new_status, changed_by, changed_at, notes)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (package_id, old_status.value, new_status.value, changed_by, changed_at, notes),
            )
            return int(cur.lastrowid)

    def list_status_history(self, package_id: int) -> Sequence[PackageStatusHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT history_id, package_id, old_status, new_status, changed_by, changed_at, notes
                FROM package_status_history
                WHERE package_id=%s
                ORDER BY changed_at DESC, history_id DESC
                """,
                (package_id,),
            )
            return [
                PackageStatusHistory(
                    history_id=int(r["history_id"]),
                    package_id=int(r["package_id"]),
                    old_status=PackageStatus(r["old_status"]),
                    new_status=PackageStatus(r["new_status"]),
                    changed_by=r.get("changed_by"),
                    changed_at=r["changed_at"],
                    notes=r.get("notes"),
                )
                for r in fetchall(cur)
            ]
