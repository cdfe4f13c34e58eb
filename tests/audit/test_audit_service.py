from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.freight_system.freight_system.audit.model import AuditContext
from src.freight_system.freight_system.audit.retention import AuditRetentionService
from src.freight_system.freight_system.audit.service import AuditService
from src.freight_system.freight_system.core.enums import AuditEventType
from src.freight_system.freight_system.core.exceptions import ValidationError
from tests.fakes import FIXED_NOW, InMemoryAuditLogs


def _service(logs, **kw):
    return AuditService(
        logs,
        context_provider=lambda: AuditContext(user_id=5, url="http://x/admin", ip_address="10.0.0.1"),
        clock=lambda: FIXED_NOW,
        **kw,
    )


def test_log_fills_request_context():
    logs = InMemoryAuditLogs()

    entry = _service(logs).log_business_action("packages_consolidated", auditable_type="ConsolidatedPackage", auditable_id=3)

    assert entry.event_type == AuditEventType.BUSINESS_ACTION
    assert entry.user_id == 5
    assert entry.ip_address == "10.0.0.1"
    assert entry.created_at == FIXED_NOW
    assert logs.rows[0].auditable_id == 3


def test_explicit_user_wins_over_session():
    logs = InMemoryAuditLogs()
    _service(logs).log_security_event("audit_logs_exported", {"format": "csv"}, user_id=2)
    assert logs.rows[0].user_id == 2


def test_event_type_must_be_known():
    with pytest.raises(ValidationError, match="Unknown audit event type"):
        _service(InMemoryAuditLogs()).log(event_type="gossip", action="x")


def test_blank_action_is_rejected():
    with pytest.raises(ValidationError, match="Action is required"):
        _service(InMemoryAuditLogs()).log(event_type="system_event", action="  ")


def test_storage_failure_is_swallowed_unless_strict():
    service = _service(InMemoryAuditLogs(fail=True))

    assert service.log_system_event("nightly_job") is None
    with pytest.raises(RuntimeError):
        service.log(event_type=AuditEventType.SYSTEM_EVENT, action="nightly_job", best_effort=False)


def test_disabled_service_writes_nothing():
    logs = InMemoryAuditLogs()
    assert _service(logs, enabled=False).log_system_event("nightly_job") is None
    assert logs.rows == []


def _old_entry(logs, event_type, days_old):
    logs.create(
        user_id=None,
        event_type=event_type,
        action="x",
        auditable_type=None,
        auditable_id=None,
        old_values=None,
        new_values=None,
        url=None,
        ip_address=None,
        user_agent=None,
        additional_data=None,
        created_at=FIXED_NOW - timedelta(days=days_old),
    )


def test_retention_deletes_per_group():
    logs = InMemoryAuditLogs()
    _old_entry(logs, AuditEventType.AUTHENTICATION, 400)
    _old_entry(logs, AuditEventType.AUTHENTICATION, 10)
    _old_entry(logs, AuditEventType.FINANCIAL_TRANSACTION, 400)
    retention = AuditRetentionService(logs, clock=lambda: FIXED_NOW)

    preview = retention.get_cleanup_preview()
    assert preview["total_to_delete"] == 1
    assert preview["by_group"]["authentication"]["count"] == 1

    result = retention.run_cleanup()
    assert result.total_deleted == 1
    assert result.deleted_by_group["authentication"] == 1
    assert len(logs.rows) == 2


def test_zero_days_keeps_a_group_forever():
    logs = InMemoryAuditLogs()
    _old_entry(logs, AuditEventType.AUTHENTICATION, 4000)
    retention = AuditRetentionService(logs, retention_days={"authentication": 0}, clock=lambda: FIXED_NOW)

    assert "authentication" not in retention.get_cleanup_preview()["by_group"]
    assert retention.run_cleanup().total_deleted == 0


def test_retention_collects_group_errors():
    class Broken(InMemoryAuditLogs):
        def delete_older_than(self, *, event_types, cutoff):
            raise RuntimeError("lock wait timeout")

    result = AuditRetentionService(Broken(), clock=lambda: datetime(2025, 1, 1)).run_cleanup()

    assert result.total_deleted == 0
    assert "Failed to clean up authentication: lock wait timeout" in result.errors
