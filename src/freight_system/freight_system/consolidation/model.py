from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import PackageStatus
from ..packages.model import ZERO


@dataclass(frozen=True)
class ConsolidatedPackage:
    """Several packages of one customer grouped under a CONS- tracking number."""

    consolidated_package_id: int
    consolidated_tracking_number: str
    customer_id: int
    status: PackageStatus
    consolidated_at: datetime
    created_by: Optional[int] = None
    total_weight: Decimal = ZERO
    total_quantity: int = 0
    total_freight_price: Decimal = ZERO
    total_clearance_fee: Decimal = ZERO
    total_storage_fee: Decimal = ZERO
    total_delivery_fee: Decimal = ZERO
    unconsolidated_at: Optional[datetime] = None
    is_active: bool = True
    notes: Optional[str] = None

    @property
    def total_cost(self) -> Decimal:
        return self.total_freight_price + self.total_clearance_fee + self.total_storage_fee + self.total_delivery_fee


@dataclass(frozen=True)
class ConsolidationHistory:
    history_id: int
    consolidated_package_id: int
    action: str
    performed_by: Optional[int]
    performed_at: datetime
    details: Optional[dict] = None


@dataclass(frozen=True)
class ConsolidatedTotals:
    weight: Decimal
    quantity: int
    freight_price: Decimal
    clearance_fee: Decimal
    storage_fee: Decimal
    delivery_fee: Decimal

    @property
    def total_cost(self) -> Decimal:
        return self.freight_price + self.clearance_fee + self.storage_fee + self.delivery_fee
