from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..audit.observer import AuditObserver
from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..core.constants import CONSOLIDATABLE_STATUSES, CONSOLIDATED_STATUS_PRIORITY
from ..core.enums import PackageStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..packages.model import ZERO, Package
from ..packages.repository import PackageRepository
from ..packages.status_service import PackageStatusService
from ..users.model import SessionUser
from ..users.permissions import can_view_package, is_staff
from .model import ConsolidatedPackage, ConsolidatedTotals, ConsolidationHistory
from .repository import ConsolidationRepository

logger = logging.getLogger(__name__)

MODEL_NAME = "ConsolidatedPackage"


@dataclass(frozen=True)
class ConsolidationCheck:
    valid: bool
    message: str
    packages: Sequence[Package] = ()


@dataclass(frozen=True)
class StatusSyncResult:
    success: bool
    message: str
    synced: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


def tracking_number_for(day: datetime, sequence: int) -> str:
    return f"CONS-{day:%Y%m%d}-{sequence:04d}"


def determine_consolidated_status(packages: Sequence[Package]) -> PackageStatus:
    """Single shared status wins; otherwise the most advanced one."""
    statuses = {p.status for p in packages}
    if len(statuses) == 1:
        return statuses.pop()
    return max(statuses, key=lambda s: CONSOLIDATED_STATUS_PRIORITY.get(s, 0))


class PackageConsolidationService:
    def __init__(
        self,
        groups: ConsolidationRepository,
        packages: PackageRepository,
        status_service: PackageStatusService,
        audit: AuditService,
        *,
        observer=None,
        audit_observer: Optional[AuditObserver] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._groups = groups
        self._packages = packages
        self._status_service = status_service
        self._audit = audit
        self._observer = observer
        self._audit_observer = audit_observer
        self._clock = clock

    def _require_group(self, consolidated_package_id: int) -> ConsolidatedPackage:
        group = self._groups.get_by_id(consolidated_package_id)
        if not group:
            raise NotFoundError("Consolidated package not found")
        return group

    def get_group(self, consolidated_package_id: int) -> ConsolidatedPackage:
        return self._require_group(consolidated_package_id)

    def list_members(self, group: ConsolidatedPackage) -> Sequence[Package]:
        return self._packages.list_for_consolidated(group.consolidated_package_id)

    def validate_consolidation(self, package_ids: Sequence[int]) -> ConsolidationCheck:
        ids = list(dict.fromkeys(int(i) for i in package_ids))
        if len(ids) < 2:
            return ConsolidationCheck(False, "At least 2 packages are required for consolidation")

        packages = list(self._packages.get_many(ids))
        if len(packages) != len(ids):
            return ConsolidationCheck(False, "Some packages were not found")

        if len({p.user_id for p in packages}) > 1:
            return ConsolidationCheck(False, "All packages must belong to the same customer")

        if any(p.is_consolidated for p in packages):
            return ConsolidationCheck(False, "Some packages are already consolidated")

        if any(p.status not in CONSOLIDATABLE_STATUSES for p in packages):
            return ConsolidationCheck(False, "Some packages are not in a status that allows consolidation")

        return ConsolidationCheck(True, "Packages can be consolidated", packages)

    def calculate_consolidated_totals(self, packages: Sequence[Package]) -> ConsolidatedTotals:
        return ConsolidatedTotals(
            weight=sum((p.weight or ZERO for p in packages), ZERO),
            quantity=len(packages),
            freight_price=sum((p.freight_price or ZERO for p in packages), ZERO),
            clearance_fee=sum((p.clearance_fee or ZERO for p in packages), ZERO),
            storage_fee=sum((p.storage_fee or ZERO for p in packages), ZERO),
            delivery_fee=sum((p.delivery_fee or ZERO for p in packages), ZERO),
        )

    def generate_tracking_number(self) -> str:
        now = self._clock()
        sequence = self._groups.count_created_on(now.date()) + 1
        tracking_number = tracking_number_for(now, sequence)
        while self._groups.tracking_number_exists(tracking_number):
            sequence += 1
            tracking_number = tracking_number_for(now, sequence)
        return tracking_number

    def _history(self, action: str, group_id: int, user: SessionUser, details: dict) -> None:
        self._groups.add_history(
            consolidated_package_id=group_id,
            action=action,
            performed_by=user.user_id,
            details=details,
            performed_at=self._clock(),
        )
        logger.info("Consolidation action %s on group %s by user %s", action, group_id, user.user_id)

    def _record_group_change(self, before: ConsolidatedPackage, user: SessionUser) -> None:
        if self._audit_observer is None:
            return
        after = self._require_group(before.consolidated_package_id)
        self._audit_observer.updated(
            MODEL_NAME, before.consolidated_package_id, before, after, user_id=user.user_id
        )

    def _notify_members(self, before: Sequence[Package], user: SessionUser, **changes) -> None:
        if self._observer is None:
            return
        for package in before:
            self._observer.updated(package, replace(package, **changes), user_id=user.user_id)

    def consolidate_packages(
        self,
        package_ids: Sequence[int],
        admin: SessionUser,
        notes: Optional[str] = None,
    ) -> ConsolidatedPackage:
        if not is_staff(admin):
            raise AuthorizationError("You do not have permission to consolidate packages.")

        check = self.validate_consolidation(package_ids)
        if not check.valid:
            raise ValidationError(check.message)

        packages = check.packages
        ids = [p.package_id for p in packages]
        customer_id = packages[0].user_id
        totals = self.calculate_consolidated_totals(packages)
        now = self._clock()

        group_id = self._groups.create(
            tracking_number=self.generate_tracking_number(),
            customer_id=customer_id,
            created_by=admin.user_id,
            totals=totals,
            status=determine_consolidated_status(packages),
            consolidated_at=now,
            notes=(notes or "").strip() or None,
        )
        if self._audit_observer is not None:
            self._audit_observer.created(MODEL_NAME, group_id, self._require_group(group_id), user_id=admin.user_id)
        self._packages.set_consolidation(ids, consolidated_package_id=group_id, consolidated_at=now)
        self._notify_members(
            packages, admin, consolidated_package_id=group_id, is_consolidated=True, consolidated_at=now
        )

        details = {
            "package_ids": ids,
            "package_count": len(ids),
            "total_weight": totals.weight,
            "total_cost": totals.total_cost,
        }
        self._history("consolidated", group_id, admin, details)
        self._audit.log_business_action(
            "packages_consolidated",
            auditable_type="ConsolidatedPackage",
            auditable_id=group_id,
            additional_data={"customer_id": customer_id, **details},
            user_id=admin.user_id,
        )
        return self._require_group(group_id)

    def unconsolidate_packages(
        self,
        group: ConsolidatedPackage,
        admin: SessionUser,
        notes: Optional[str] = None,
    ) -> ConsolidatedPackage:
        if not is_staff(admin):
            raise AuthorizationError("You do not have permission to unconsolidate this package.")

        members = list(self.list_members(group))
        if not group.is_active or any(p.status == PackageStatus.DELIVERED for p in members):
            raise ValidationError("Consolidated package cannot be unconsolidated at this time")
        if not members:
            raise ValidationError("No packages found in consolidated package")

        ids = [p.package_id for p in members]
        now = self._clock()
        self._packages.set_consolidation(ids, consolidated_package_id=None, consolidated_at=None)
        self._notify_members(members, admin, consolidated_package_id=None, is_consolidated=False, consolidated_at=None)

        note = f"Unconsolidated on {now:%Y-%m-%d %H:%M:%S}"
        if notes:
            note += f" - {notes.strip()}"
        combined = f"{group.notes}\n\n{note}" if group.notes else note
        self._groups.deactivate(group.consolidated_package_id, unconsolidated_at=now, notes=combined)
        self._record_group_change(group, admin)

        details = {
            "package_ids": ids,
            "package_count": len(ids),
            "reason": notes.strip() if notes else "Manual unconsolidation",
        }
        self._history("unconsolidated", group.consolidated_package_id, admin, details)
        self._audit.log_business_action(
            "packages_unconsolidated",
            auditable_type="ConsolidatedPackage",
            auditable_id=group.consolidated_package_id,
            additional_data={"customer_id": group.customer_id, **details},
            user_id=admin.user_id,
        )
        return self._require_group(group.consolidated_package_id)

    def update_consolidated_status(
        self,
        group: ConsolidatedPackage,
        status,
        user: SessionUser,
        notes: Optional[str] = None,
    ) -> StatusSyncResult:
        if not is_staff(user):
            raise AuthorizationError("You do not have permission to update this consolidated package.")
        try:
            new_status = PackageStatus(status)
        except ValueError:
            raise ValidationError("Invalid status provided")
        if not group.is_active:
            raise ValidationError("Consolidated package is no longer active")

        old_status = group.status
        self._groups.update_status(group.consolidated_package_id, new_status)
        self._record_group_change(group, user)

        synced, failed = [], []
        for package in self.list_members(group):
            ok = self._status_service.update_status(
                package,
                new_status,
                user,
                notes,
                allow_delivered=new_status == PackageStatus.DELIVERED,
                from_consolidated=True,
            )
            (synced if ok else failed).append(package.package_id)

        self._history(
            "status_changed",
            group.consolidated_package_id,
            user,
            {
                "old_status": old_status.value,
                "new_status": new_status.value,
                "package_count": len(synced) + len(failed),
                "reason": notes or "Status updated",
            },
        )
        if failed:
            logger.warning("Status sync failed for packages %s in group %s", failed, group.consolidated_package_id)
        return StatusSyncResult(
            success=not failed,
            message="Status updated successfully" if not failed else "Status updated with some failures",
            synced=synced,
            failed=failed,
        )

    def _require_customer_access(self, customer_id: int, user: SessionUser, what: str) -> None:
        if not can_view_package(user, owner_id=customer_id):
            raise AuthorizationError(f"You do not have permission to view {what} for this customer.")

    def get_consolidation_history(
        self,
        group: ConsolidatedPackage,
        user: SessionUser,
        *,
        action: Optional[str] = None,
    ) -> Sequence[ConsolidationHistory]:
        if not can_view_package(user, owner_id=group.customer_id):
            raise AuthorizationError("You do not have permission to view consolidation history for this package.")
        return self._groups.list_history(group.consolidated_package_id, action=action)

    def get_available_packages_for_customer(self, customer_id: int, user: SessionUser) -> Sequence[Package]:
        self._require_customer_access(customer_id, user, "packages")
        return [
            p
            for p in self._packages.list_for_customer(customer_id)
            if not p.is_consolidated and p.status in CONSOLIDATABLE_STATUSES
        ]

    def get_active_consolidated_packages_for_customer(
        self, customer_id: int, user: SessionUser
    ) -> Sequence[ConsolidatedPackage]:
        self._require_customer_access(customer_id, user, "consolidated packages")
        return self._groups.list_active_for_customer(customer_id)
