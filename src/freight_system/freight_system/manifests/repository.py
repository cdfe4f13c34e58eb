from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ManifestAuditAction
from .model import Manifest, ManifestAudit


class ManifestRepository(Protocol):
    def get_by_id(self, manifest_id: int) -> Optional[Manifest]:
        raise NotImplementedError

    def list_all(self, *, limit: int = 200) -> Sequence[Manifest]:
        raise NotImplementedError

    def set_open(self, manifest_id: int, *, is_open: bool) -> bool:
        raise NotImplementedError

    def add_audit(
        self,
        *,
        manifest_id: int,
        user_id: Optional[int],
        action: ManifestAuditAction,
        reason: str,
        performed_at: datetime,
    ) -> int:
        raise NotImplementedError

    def list_audits(self, manifest_id: int, *, limit: int = 50) -> Sequence[ManifestAudit]:
        raise NotImplementedError
