from __future__ import annotations

import json
from decimal import Decimal
from enum import Enum
from typing import Any


def format_bytes(size: int) -> str:
    """Human readable size, e.g. 1048576 -> '1 MB'."""
    if not size or size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def format_money(amount: Any) -> str:
    return f"{Decimal(str(amount or 0)):,.2f}"


def to_json(value: Any) -> str:
    """JSON encode audit payloads (Decimal/datetime/Enum safe)."""
    return json.dumps(value, default=_json_default, ensure_ascii=False, sort_keys=True)


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
