from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..core.enums import ManifestType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, to_decimal
from .model import Rate
from .repository import RateRepository

_COLUMNS = "rate_id, type, weight, min_cubic_feet, max_cubic_feet, price, processing_fee"


def _row_to_rate(row: dict) -> Rate:
    return Rate(
        rate_id=int(row["rate_id"]),
        type=ManifestType(row["type"]),
        weight=int(row["weight"]) if row.get("weight") is not None else None,
        min_cubic_feet=to_decimal(row.get("min_cubic_feet"), default=None),
        max_cubic_feet=to_decimal(row.get("max_cubic_feet"), default=None),
        price=to_decimal(row["price"]),
        processing_fee=to_decimal(row.get("processing_fee")),
    )


class MySQLRateRepository(RateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _one(self, sql: str, params: tuple) -> Optional[Rate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            row = fetchone(cur)
            return _row_to_rate(row) if row else None

    def find_air_rate(self, min_weight: int) -> Optional[Rate]:
        return self._one(
            f"SELECT {_COLUMNS} FROM rates WHERE type='air' AND weight >= %s ORDER BY weight ASC LIMIT 1",
            (int(min_weight),),
        )

    def find_sea_rate_in_range(self, cubic_feet: Decimal) -> Optional[Rate]:
        return self._one(
            f"""
            SELECT {_COLUMNS} FROM rates
            WHERE type='sea' AND min_cubic_feet <= %s AND max_cubic_feet >= %s
            ORDER BY min_cubic_feet ASC LIMIT 1
            """,
            (cubic_feet, cubic_feet),
        )

    def find_next_sea_rate_above(self, cubic_feet: Decimal) -> Optional[Rate]:
        return self._one(
            f"SELECT {_COLUMNS} FROM rates WHERE type='sea' AND min_cubic_feet > %s ORDER BY min_cubic_feet ASC LIMIT 1",
            (cubic_feet,),
        )

    def find_highest_sea_rate(self) -> Optional[Rate]:
        return self._one(
            f"SELECT {_COLUMNS} FROM rates WHERE type='sea' ORDER BY max_cubic_feet DESC LIMIT 1",
            (),
        )
