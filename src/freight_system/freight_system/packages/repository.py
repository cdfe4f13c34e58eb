from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import PackageStatus
from .model import Package, PackageStatusHistory


class PackageRepository(Protocol):
    def get_by_id(self, package_id: int) -> Optional[Package]:
        raise NotImplementedError

    def get_many(self, package_ids: Sequence[int]) -> Sequence[Package]:
        raise NotImplementedError

    def list_all(self, *, status: Optional[PackageStatus] = None, limit: int = 500) -> Sequence[Package]:
        raise NotImplementedError

    def list_for_manifest(self, manifest_id: int) -> Sequence[Package]:
        raise NotImplementedError

    def list_for_customer(self, user_id: int) -> Sequence[Package]:
        raise NotImplementedError

    def list_for_consolidated(self, consolidated_package_id: int) -> Sequence[Package]:
        raise NotImplementedError

    def count_by_status(self) -> dict[PackageStatus, int]:
        raise NotImplementedError

    def manifest_delivery_counts(self, manifest_id: int) -> tuple[int, int]:
        """Return (total packages, packages not yet delivered)."""
        raise NotImplementedError

    def update_status(self, package_id: int, status: PackageStatus) -> bool:
        raise NotImplementedError

    def update_fees(
        self,
        package_id: int,
        *,
        clearance_fee: Decimal,
        storage_fee: Decimal,
        delivery_fee: Decimal,
        status: PackageStatus,
    ) -> bool:
        raise NotImplementedError

    def update_freight_price(self, package_id: int, freight_price: Decimal) -> bool:
        raise NotImplementedError

    def set_consolidation(
        self,
        package_ids: Sequence[int],
        *,
        consolidated_package_id: Optional[int],
        consolidated_at: Optional[datetime],
    ) -> int:
        raise NotImplementedError

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
        raise NotImplementedError

    def list_status_history(self, package_id: int) -> Sequence[PackageStatusHistory]:
        raise NotImplementedError
