from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AuditEventType
from .model import AuditFilters, AuditLog


class AuditLogRepository(Protocol):
    def create(
        self,
        *,
        user_id: Optional[int],
        event_type: AuditEventType,
        action: str,
        auditable_type: Optional[str],
        auditable_id: Optional[int],
        old_values: Optional[dict],
        new_values: Optional[dict],
        url: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
        additional_data: Optional[dict],
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def search(self, filters: AuditFilters, *, limit: int) -> Sequence[AuditLog]:
        raise NotImplementedError

    def count_older_than(self, *, event_types: Sequence[AuditEventType], cutoff: datetime) -> int:
        raise NotImplementedError

    def oldest_before(self, *, event_types: Sequence[AuditEventType], cutoff: datetime) -> Optional[datetime]:
        raise NotImplementedError

    def delete_older_than(self, *, event_types: Sequence[AuditEventType], cutoff: datetime) -> int:
        raise NotImplementedError
