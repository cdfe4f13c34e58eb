from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import PackageStatus

ZERO = Decimal("0")


@dataclass(frozen=True)
class Package:
    """Domain entity: Package (plain data, no DB access)."""

    package_id: int
    user_id: int
    manifest_id: int
    tracking_number: str
    status: PackageStatus
    description: Optional[str] = None
    weight: Optional[Decimal] = None
    length_inches: Optional[Decimal] = None
    width_inches: Optional[Decimal] = None
    height_inches: Optional[Decimal] = None
    cubic_feet: Optional[Decimal] = None
    estimated_value: Optional[Decimal] = None
    freight_price: Decimal = ZERO
    clearance_fee: Decimal = ZERO
    storage_fee: Decimal = ZERO
    delivery_fee: Decimal = ZERO
    consolidated_package_id: Optional[int] = None
    is_consolidated: bool = False
    consolidated_at: Optional[datetime] = None

    @property
    def total_cost(self) -> Decimal:
        return (
            (self.freight_price or ZERO)
            + (self.clearance_fee or ZERO)
            + (self.storage_fee or ZERO)
            + (self.delivery_fee or ZERO)
        )


@dataclass(frozen=True)
class PackageStatusHistory:
    history_id: int
    package_id: int
    old_status: PackageStatus
    new_status: PackageStatus
    changed_by: Optional[int]
    changed_at: datetime
    notes: Optional[str] = None
