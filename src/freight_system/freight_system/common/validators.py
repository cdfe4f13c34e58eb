from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters long")
    return value


def require_reason(value: Optional[str], *, action: str, min_len: int, max_len: int) -> str:
    """Trim and bound a free-text reason for manifest lock/unlock."""
    reason = (value or "").strip()
    if not reason:
        raise ValidationError(f"A reason is required to {action} the manifest.")
    if len(reason) < min_len:
        raise ValidationError(f"Reason must be at least {min_len} characters long.")
    if len(reason) > max_len:
        raise ValidationError(f"Reason cannot exceed {max_len} characters.")
    return reason


def parse_non_negative_decimal(value: Any) -> Optional[Decimal]:
    """Return a Decimal >= 0, or None when value is not a usable amount."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount
