from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import PackageStatus
from ..core.exceptions import ManifestLockedError
from ..manifests.lock_service import ensure_open
from ..manifests.repository import ManifestRepository
from ..users.model import SessionUser
from .model import Package
from .repository import PackageRepository

logger = logging.getLogger(__name__)


class PackageStatusService:
    """Status changes with transition rules, history rows and audit hooks.

    DELIVERED is only reachable through distribution (``allow_delivered``).
    Consolidated members move only with their group (``from_consolidated``).
    """

    def __init__(
        self,
        packages: PackageRepository,
        manifests: ManifestRepository,
        *,
        observer=None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._packages = packages
        self._manifests = manifests
        self._observer = observer
        self._clock = clock

    def get_valid_transitions(self, current: PackageStatus) -> list[PackageStatus]:
        return current.valid_transitions()

    def can_transition_to(self, current: PackageStatus, new: PackageStatus) -> bool:
        return current.can_transition_to(new)

    def update_status(
        self,
        package: Package,
        new_status: PackageStatus,
        user: SessionUser,
        notes: Optional[str] = None,
        *,
        allow_delivered: bool = False,
        from_consolidated: bool = False,
    ) -> bool:
        old_status = package.status

        if new_status == PackageStatus.DELIVERED and not allow_delivered:
            logger.warning(
                "Manual update to delivered blocked for package %s (%s); use distribution",
                package.package_id,
                old_status.value,
            )
            return False

        if not from_consolidated:
            if not self.can_transition_to(old_status, new_status):
                logger.warning(
                    "Invalid status transition for package %s: %s -> %s",
                    package.package_id,
                    old_status.value,
                    new_status.value,
                )
                return False

            if package.is_consolidated and package.consolidated_package_id:
                logger.warning(
                    "Individual status update blocked for package %s in consolidated group %s",
                    package.package_id,
                    package.consolidated_package_id,
                )
                return False

            manifest = self._manifests.get_by_id(package.manifest_id)
            if manifest:
                ensure_open(manifest)

        if not self._packages.update_status(package.package_id, new_status):
            logger.error("Failed to update status for package %s", package.package_id)
            return False

        self._packages.add_status_history(
            package_id=package.package_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=user.user_id,
            changed_at=self._clock(),
            notes=notes,
        )
        logger.info(
            "Package %s status %s -> %s by user %s",
            package.package_id,
            old_status.value,
            new_status.value,
            user.user_id,
        )

        if self._observer is not None:
            self._observer.updated(package, replace(package, status=new_status), user_id=user.user_id)
        return True

    def mark_delivered_through_distribution(self, package: Package, user: SessionUser, notes: Optional[str] = None) -> bool:
        return self.update_status(package, PackageStatus.DELIVERED, user, notes, allow_delivered=True)

    def bulk_update_status(
        self,
        package_ids: Sequence[int],
        new_status: PackageStatus,
        user: SessionUser,
        notes: Optional[str] = None,
    ) -> dict:
        results = {"success": [], "failed": [], "total": len(package_ids)}

        for package_id in package_ids:
            package = self._packages.get_by_id(package_id)
            if not package:
                results["failed"].append({"package_id": package_id, "reason": "Package not found"})
                continue

            try:
                updated = self.update_status(package, new_status, user, notes)
            except ManifestLockedError as e:
                results["failed"].append({"package_id": package_id, "reason": str(e)})
                continue

            if updated:
                results["success"].append(package_id)
            else:
                results["failed"].append(
                    {"package_id": package_id, "reason": "Invalid status transition or update failed"}
                )

        logger.info(
            "Bulk status update to %s: %d ok, %d failed",
            new_status.value,
            len(results["success"]),
            len(results["failed"]),
        )
        return results

    def get_distributable_packages(self) -> Sequence[Package]:
        return self._packages.list_all(status=PackageStatus.READY)

    def can_distribute_packages(self, package_ids: Sequence[int]) -> dict:
        results = {"valid": [], "invalid": []}
        for package in self._packages.get_many(package_ids):
            if package.status.allows_distribution():
                results["valid"].append(package.package_id)
            else:
                results["invalid"].append(
                    {
                        "package_id": package.package_id,
                        "current_status": package.status.value,
                        "reason": "Package must be in ready status for distribution",
                    }
                )
        return results

    def get_status_statistics(self) -> dict:
        counts = self._packages.count_by_status()
        return {
            status.value: {
                "label": status.label,
                "count": counts.get(status, 0),
                "badge_class": status.badge_class,
            }
            for status in PackageStatus
        }
