from __future__ import annotations

import json
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..common.formatting import to_json
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_decimal(value: Any, default: Optional[Decimal] = Decimal("0")) -> Optional[Decimal]:
    """Normalize DECIMAL/FLOAT/str column values into Decimal."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def load_json(value: Any) -> Optional[dict]:
    """Decode a JSON column.

    mysql-connector returns JSON columns as str (or bytes with the C extension).
    """
    if value is None or value == "":
        return None
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    return json.loads(value)


def dump_json(value: Optional[dict]) -> Optional[str]:
    if value is None:
        return None
    return to_json(value)


def in_clause(values: List[Any]) -> str:
    """Placeholders for `WHERE col IN (...)` with parameter binding."""
    return ",".join(["%s"] * len(values))
