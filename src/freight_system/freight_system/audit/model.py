from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AuditEventType


@dataclass(frozen=True)
class AuditLog:
    """Append-only audit record."""

    audit_log_id: int
    user_id: Optional[int]
    event_type: AuditEventType
    action: str
    auditable_type: Optional[str]
    auditable_id: Optional[int]
    old_values: Optional[dict]
    new_values: Optional[dict]
    url: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    additional_data: Optional[dict]
    created_at: datetime


@dataclass(frozen=True)
class AuditContext:
    """Who/where an audited action came from."""

    user_id: Optional[int] = None
    url: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class AuditFilters:
    search: Optional[str] = None
    event_type: Optional[AuditEventType] = None
    action: Optional[str] = None
    user_id: Optional[int] = None
    auditable_type: Optional[str] = None
    auditable_id: Optional[int] = None
    ip_address: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
