from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional

from ..common.datetime_utils import now_local
from ..core.enums import AuditEventType
from .repository import AuditLogRepository

logger = logging.getLogger(__name__)

# Retention policy keys -> event types they govern.
RETENTION_GROUPS: dict[str, tuple[AuditEventType, ...]] = {
    "authentication": (AuditEventType.AUTHENTICATION,),
    "security_events": (AuditEventType.SECURITY_EVENT, AuditEventType.AUTHORIZATION),
    "model_changes": (
        AuditEventType.MODEL_CREATED,
        AuditEventType.MODEL_UPDATED,
        AuditEventType.MODEL_DELETED,
        AuditEventType.MODEL_RESTORED,
    ),
    "business_actions": (AuditEventType.BUSINESS_ACTION,),
    "financial_transactions": (AuditEventType.FINANCIAL_TRANSACTION,),
    "system_events": (AuditEventType.SYSTEM_EVENT,),
}

DEFAULT_RETENTION_DAYS = {
    "authentication": 365,
    "security_events": 1095,
    "model_changes": 730,
    "business_actions": 1095,
    "financial_transactions": 2555,
    "system_events": 365,
    "default": 365,
}


@dataclass
class RetentionCleanupResult:
    total_deleted: int = 0
    deleted_by_group: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AuditRetentionService:
    """Apply per-group retention to the audit log. A group set to 0 days is kept forever."""

    def __init__(
        self,
        logs: AuditLogRepository,
        *,
        retention_days: Optional[Mapping[str, int]] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._logs = logs
        self._retention = {**DEFAULT_RETENTION_DAYS, **dict(retention_days or {})}
        self._clock = clock

    def retention_for(self, group: str) -> int:
        return int(self._retention.get(group, self._retention["default"]))

    def _active_groups(self):
        for group, event_types in RETENTION_GROUPS.items():
            days = self.retention_for(group)
            if days > 0:
                yield group, event_types, days

    def get_cleanup_preview(self) -> dict:
        now = self._clock()
        preview = {"total_to_delete": 0, "by_group": {}}
        for group, event_types, days in self._active_groups():
            cutoff = now - timedelta(days=days)
            count = self._logs.count_older_than(event_types=event_types, cutoff=cutoff)
            oldest = self._logs.oldest_before(event_types=event_types, cutoff=cutoff)
            preview["by_group"][group] = {
                "count": count,
                "retention_days": days,
                "cutoff_date": cutoff.strftime("%Y-%m-%d %H:%M:%S"),
                "oldest_record": oldest.strftime("%Y-%m-%d %H:%M:%S") if oldest else None,
            }
            preview["total_to_delete"] += count
        return preview

    def run_cleanup(self) -> RetentionCleanupResult:
        result = RetentionCleanupResult(started_at=self._clock())
        for group, event_types, days in self._active_groups():
            cutoff = result.started_at - timedelta(days=days)
            try:
                deleted = self._logs.delete_older_than(event_types=event_types, cutoff=cutoff)
            except Exception as e:
                msg = f"Failed to clean up {group}: {e}"
                logger.exception(msg)
                result.errors.append(msg)
                continue
            result.deleted_by_group[group] = deleted
            result.total_deleted += deleted

        result.completed_at = self._clock()
        logger.info("Audit retention cleanup completed: %d deleted", result.total_deleted)
        return result
