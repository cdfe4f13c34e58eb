from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..audit.observer import AuditObserver
from ..common.datetime_utils import now_local
from ..common.validators import require_reason
from ..core.constants import DEFAULT_RECENT_ACTIVITY_LIMIT, MAX_REASON_LENGTH, MIN_REASON_LENGTH
from ..core.enums import ManifestAuditAction
from ..core.exceptions import AuthorizationError, ManifestLockedError, ValidationError
from ..packages.repository import PackageRepository
from ..users.model import SessionUser
from ..users.permissions import can_edit_manifest, can_unlock_manifest
from .model import Manifest, ManifestAudit
from .repository import ManifestRepository

logger = logging.getLogger(__name__)

AUTO_CLOSE_REASON = "All packages have been delivered"


@dataclass(frozen=True)
class LockResult:
    success: bool
    message: str
    manifest: Optional[Manifest] = None


@dataclass(frozen=True)
class LockStatus:
    is_open: bool
    status_label: str
    can_be_edited: bool
    last_audit: Optional[ManifestAudit]


def ensure_open(manifest: Manifest) -> None:
    """Gate for package fee/status mutations."""
    if not manifest.is_open:
        raise ManifestLockedError(
            f"Manifest {manifest.name} is closed. Unlock it before changing its packages."
        )


class ManifestLockService:
    """Open/closed gate for manifests, with a reasoned audit trail."""

    def __init__(
        self,
        manifests: ManifestRepository,
        packages: PackageRepository,
        *,
        audit_observer: Optional[AuditObserver] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._manifests = manifests
        self._packages = packages
        self._audit_observer = audit_observer
        self._clock = clock

    def _set_open(self, manifest: Manifest, *, is_open: bool, user_id: Optional[int], failure: str) -> None:
        if not self._manifests.set_open(manifest.manifest_id, is_open=is_open):
            raise ValidationError(failure)
        if self._audit_observer is not None:
            self._audit_observer.updated(
                "Manifest", manifest.manifest_id, manifest, replace(manifest, is_open=is_open), user_id=user_id
            )

    def can_edit(self, manifest: Manifest, user: SessionUser) -> bool:
        return manifest.is_open and can_edit_manifest(user)

    def is_eligible_for_auto_closure(self, manifest: Manifest) -> bool:
        if not manifest.is_open:
            return False
        total, not_delivered = self._packages.manifest_delivery_counts(manifest.manifest_id)
        return total > 0 and not_delivered == 0

    def auto_close_if_complete(self, manifest: Manifest) -> bool:
        if not self.is_eligible_for_auto_closure(manifest):
            return False

        self._close(manifest, user_id=None, action=ManifestAuditAction.AUTO_COMPLETE, reason=AUTO_CLOSE_REASON)
        logger.info("Manifest %s auto-closed: all packages delivered", manifest.manifest_id)
        return True

    def _close(self, manifest: Manifest, *, user_id: Optional[int], action: ManifestAuditAction, reason: str) -> None:
        self._set_open(manifest, is_open=False, user_id=user_id, failure="Failed to close manifest")
        self._manifests.add_audit(
            manifest_id=manifest.manifest_id,
            user_id=user_id,
            action=action,
            reason=reason,
            performed_at=self._clock(),
        )

    def unlock_manifest(self, manifest: Manifest, user: SessionUser, reason: str) -> LockResult:
        if manifest.is_open:
            raise ValidationError("Manifest is already open.")
        if not can_unlock_manifest(user):
            raise AuthorizationError("You do not have permission to unlock this manifest.")

        reason = require_reason(reason, action="unlock", min_len=MIN_REASON_LENGTH, max_len=MAX_REASON_LENGTH)

        self._set_open(manifest, is_open=True, user_id=user.user_id, failure="Failed to unlock manifest")
        self._manifests.add_audit(
            manifest_id=manifest.manifest_id,
            user_id=user.user_id,
            action=ManifestAuditAction.UNLOCKED,
            reason=reason,
            performed_at=self._clock(),
        )

        logger.info("Manifest %s unlocked by user %s: %s", manifest.manifest_id, user.user_id, reason)
        return LockResult(
            success=True,
            message="Manifest unlocked successfully.",
            manifest=self._manifests.get_by_id(manifest.manifest_id),
        )

    def lock_manifest(self, manifest: Manifest, user: SessionUser, reason: str) -> LockResult:
        if not manifest.is_open:
            raise ValidationError("Manifest is already closed.")
        if not can_edit_manifest(user):
            raise AuthorizationError("You do not have permission to close this manifest.")

        reason = require_reason(reason, action="close", min_len=MIN_REASON_LENGTH, max_len=MAX_REASON_LENGTH)
        self._close(manifest, user_id=user.user_id, action=ManifestAuditAction.CLOSED, reason=reason)

        logger.info("Manifest %s locked by user %s: %s", manifest.manifest_id, user.user_id, reason)
        return LockResult(
            success=True,
            message="Manifest locked successfully.",
            manifest=self._manifests.get_by_id(manifest.manifest_id),
        )

    def get_recent_activity(self, manifest: Manifest, *, limit: int = DEFAULT_RECENT_ACTIVITY_LIMIT) -> Sequence[ManifestAudit]:
        return self._manifests.list_audits(manifest.manifest_id, limit=limit)

    def get_lock_status(self, manifest: Manifest, user: Optional[SessionUser] = None) -> LockStatus:
        recent = self._manifests.list_audits(manifest.manifest_id, limit=1)
        return LockStatus(
            is_open=manifest.is_open,
            status_label=manifest.status_label,
            can_be_edited=self.can_edit(manifest, user) if user else manifest.is_open,
            last_audit=recent[0] if recent else None,
        )
