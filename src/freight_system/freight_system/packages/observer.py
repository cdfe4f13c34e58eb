from __future__ import annotations

import logging
from typing import Optional

from ..audit.observer import AuditObserver, snapshot
from ..audit.service import AuditService
from ..core.constants import FEE_FIELDS
from ..core.enums import PackageStatus
from ..manifests.lock_service import ManifestLockService
from ..manifests.repository import ManifestRepository
from .model import ZERO, Package

logger = logging.getLogger(__name__)

MODEL_NAME = "Package"


def _total(values: dict):
    return sum((values.get(f) or ZERO for f in FEE_FIELDS), ZERO)


class PackageAuditObserver:
    """Reacts to package changes: audit trail plus manifest auto-closure."""

    def __init__(
        self,
        audit: AuditService,
        model_observer: AuditObserver,
        manifests: ManifestRepository,
        lock_service: ManifestLockService,
    ):
        self._audit = audit
        self._model_observer = model_observer
        self._manifests = manifests
        self._lock_service = lock_service

    def _business(self, action: str, package: Package, data: dict, user_id: Optional[int]):
        base = {"tracking_number": package.tracking_number, "customer_id": package.user_id}
        base.update(data)
        self._audit.log_business_action(
            action,
            auditable_type=MODEL_NAME,
            auditable_id=package.package_id,
            additional_data=base,
            user_id=user_id,
        )

    def updated(self, before: Package, after: Package, *, user_id: Optional[int] = None) -> None:
        self._model_observer.updated(MODEL_NAME, after.package_id, before, after, user_id=user_id)

        old = snapshot(before)
        new = snapshot(after)

        if before.status != after.status:
            self._business(
                "package_status_changed",
                after,
                {"old_status": old["status"], "new_status": new["status"]},
                user_id,
            )

        if before.consolidated_package_id != after.consolidated_package_id:
            action = "package_consolidated" if after.consolidated_package_id else "package_unconsolidated"
            self._business(
                action,
                after,
                {
                    "old_consolidated_package_id": before.consolidated_package_id,
                    "new_consolidated_package_id": after.consolidated_package_id,
                },
                user_id,
            )

        if before.manifest_id != after.manifest_id:
            self._business(
                "package_manifest_changed",
                after,
                {"old_manifest_id": before.manifest_id, "new_manifest_id": after.manifest_id},
                user_id,
            )

        fee_changes = {f: new[f] for f in FEE_FIELDS if old.get(f) != new.get(f)}
        if fee_changes:
            self._business(
                "package_fees_updated",
                after,
                {"fee_changes": fee_changes, "old_total_cost": _total(old), "new_total_cost": after.total_cost},
                user_id,
            )

        if before.status != after.status and after.status == PackageStatus.DELIVERED:
            self._check_auto_closure(after)

    def _check_auto_closure(self, package: Package) -> None:
        manifest = self._manifests.get_by_id(package.manifest_id)
        if manifest and self._lock_service.auto_close_if_complete(manifest):
            self._audit.log_business_action(
                "manifest_auto_closed",
                auditable_type="Manifest",
                auditable_id=manifest.manifest_id,
                additional_data={"trigger_package_id": package.package_id},
            )
