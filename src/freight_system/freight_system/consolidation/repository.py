from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import PackageStatus
from .model import ConsolidatedPackage, ConsolidatedTotals, ConsolidationHistory


class ConsolidationRepository(Protocol):
    def get_by_id(self, consolidated_package_id: int) -> Optional[ConsolidatedPackage]:
        raise NotImplementedError

    def tracking_number_exists(self, tracking_number: str) -> bool:
        raise NotImplementedError

    def count_created_on(self, day: date) -> int:
        raise NotImplementedError

    def create(
        self,
        *,
        tracking_number: str,
        customer_id: int,
        created_by: Optional[int],
        totals: ConsolidatedTotals,
        status: PackageStatus,
        consolidated_at: datetime,
        notes: Optional[str],
    ) -> int:
        raise NotImplementedError

    def update_status(self, consolidated_package_id: int, status: PackageStatus) -> bool:
        raise NotImplementedError

    def deactivate(self, consolidated_package_id: int, *, unconsolidated_at: datetime, notes: str) -> bool:
        raise NotImplementedError

    def list_active_for_customer(self, customer_id: int) -> Sequence[ConsolidatedPackage]:
        raise NotImplementedError

    def add_history(
        self,
        *,
        consolidated_package_id: int,
        action: str,
        performed_by: Optional[int],
        details: Optional[dict],
        performed_at: datetime,
    ) -> int:
        raise NotImplementedError

    def list_history(self, consolidated_package_id: int, *, action: Optional[str] = None) -> Sequence[ConsolidationHistory]:
        raise NotImplementedError
