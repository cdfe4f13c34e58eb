from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Mapping, Optional

from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..common.validators import parse_non_negative_decimal
from ..core.enums import PackageStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..manifests.lock_service import ensure_open
from ..manifests.repository import ManifestRepository
from ..users.model import SessionUser
from .model import ZERO, Package
from .repository import PackageRepository

logger = logging.getLogger(__name__)

READY_NOTE = "Package fees updated and set to ready for pickup"

FEE_INPUTS = {
    "customs_duty": "Customs duty",
    "storage_fee": "Storage fee",
    "delivery_fee": "Delivery fee",
}


@dataclass(frozen=True)
class FeeUpdateResult:
    success: bool
    message: str
    total_cost: Decimal = ZERO
    package: Optional[Package] = None


class PackageFeeService:
    def __init__(
        self,
        packages: PackageRepository,
        manifests: ManifestRepository,
        audit: AuditService,
        *,
        observer=None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._packages = packages
        self._manifests = manifests
        self._audit = audit
        self._observer = observer
        self._clock = clock

    def validate_fees(self, fees: Mapping) -> dict:
        errors = {}
        for key, label in FEE_INPUTS.items():
            if parse_non_negative_decimal(fees.get(key)) is None:
                errors[key] = f"{label} must be a valid positive number"
        return errors

    def _parsed(self, fees: Mapping) -> dict:
        errors = self.validate_fees(fees)
        if errors:
            raise ValidationError("; ".join(errors.values()))
        return {key: parse_non_negative_decimal(fees.get(key)) for key in FEE_INPUTS}

    def get_fee_update_preview(self, package: Package, fees: Mapping) -> dict:
        errors = self.validate_fees(fees)
        if errors:
            return {"valid": False, "errors": errors}

        parsed = self._parsed(fees)
        freight = package.freight_price or ZERO
        new_total = freight + parsed["customs_duty"] + parsed["storage_fee"] + parsed["delivery_fee"]
        return {
            "valid": True,
            "package": {
                "tracking_number": package.tracking_number,
                "description": package.description,
                "current_status": package.status.label,
                "new_status": PackageStatus.READY.label,
            },
            "fees": {"freight_price": freight, **parsed},
            "current_total_cost": package.total_cost,
            "new_total_cost": new_total,
            "cost_difference": new_total - package.total_cost,
        }

    def update_fees_and_set_ready(self, package: Package, fees: Mapping, user: SessionUser) -> FeeUpdateResult:
        manifest = self._manifests.get_by_id(package.manifest_id)
        if not manifest:
            raise NotFoundError("Manifest not found")
        ensure_open(manifest)

        parsed = self._parsed(fees)
        old_status = package.status

        ok = self._packages.update_fees(
            package.package_id,
            clearance_fee=parsed["customs_duty"],
            storage_fee=parsed["storage_fee"],
            delivery_fee=parsed["delivery_fee"],
            status=PackageStatus.READY,
        )
        if not ok:
            logger.error("Failed to update fees for package %s", package.package_id)
            return FeeUpdateResult(success=False, message="Failed to update package fees")

        updated = replace(
            package,
            clearance_fee=parsed["customs_duty"],
            storage_fee=parsed["storage_fee"],
            delivery_fee=parsed["delivery_fee"],
            status=PackageStatus.READY,
        )
        total_cost = updated.total_cost

        self._packages.add_status_history(
            package_id=package.package_id,
            old_status=old_status,
            new_status=PackageStatus.READY,
            changed_by=user.user_id,
            changed_at=self._clock(),
            notes=READY_NOTE,
        )
        self._audit.log_financial_transaction(
            "package_fees_updated",
            {
                "package_id": package.package_id,
                "package_tracking": package.tracking_number,
                "customer_id": package.user_id,
                "old_status": old_status.value,
                "new_status": PackageStatus.READY.value,
                "fees": parsed,
                "total_cost": total_cost,
                "updated_by": user.full_name,
            },
            customer_id=package.user_id,
            user_id=user.user_id,
        )
        if self._observer is not None:
            self._observer.updated(package, updated, user_id=user.user_id)

        logger.info("Fees updated for package %s, total %s", package.package_id, total_cost)
        return FeeUpdateResult(
            success=True,
            message="Package fees updated and status set to ready for pickup",
            total_cost=total_cost,
            package=self._packages.get_by_id(package.package_id),
        )
