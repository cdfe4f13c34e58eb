from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..core.enums import ManifestType


@dataclass(frozen=True)
class Rate:
    """Rate bracket.

    Air brackets are keyed by ``weight`` (whole lbs); sea brackets by the
    ``min_cubic_feet``..``max_cubic_feet`` range.
    """

    rate_id: int
    type: ManifestType
    price: Decimal
    processing_fee: Decimal = Decimal("0")
    weight: Optional[int] = None
    min_cubic_feet: Optional[Decimal] = None
    max_cubic_feet: Optional[Decimal] = None

    @property
    def unit_total(self) -> Decimal:
        return self.price + self.processing_fee
