from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.constants import CUBIC_INCHES_PER_CUBIC_FOOT

_THREE_PLACES = Decimal("0.001")


def calculate_cubic_feet(length, width, height) -> Optional[Decimal]:
    """Inches in, cubic feet out (3 decimal places). None if a side is missing."""
    if length is None or width is None or height is None:
        return None
    volume = Decimal(str(length)) * Decimal(str(width)) * Decimal(str(height))
    return (volume / CUBIC_INCHES_PER_CUBIC_FOOT).quantize(_THREE_PLACES, rounding=ROUND_HALF_UP)
