"""In-memory repositories shared by the service tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from config.defaults import AUDITABLE_MODELS
from src.freight_system.freight_system.audit.model import AuditContext, AuditLog
from src.freight_system.freight_system.audit.observer import AuditObserver
from src.freight_system.freight_system.audit.service import AuditService
from src.freight_system.freight_system.backups.model import Backup
from src.freight_system.freight_system.core.enums import AuditEventType, BackupStatus, ManifestType, PackageStatus, Role
from src.freight_system.freight_system.manifests.model import Manifest, ManifestAudit
from src.freight_system.freight_system.packages.model import Package, PackageStatusHistory
from src.freight_system.freight_system.rates.model import Rate
from src.freight_system.freight_system.users.model import SessionUser

ADMIN = SessionUser(user_id=1, full_name="Admin", role=Role.ADMIN)
SUPERADMIN = SessionUser(user_id=2, full_name="Root", role=Role.SUPERADMIN)
CUSTOMER = SessionUser(user_id=10, full_name="Customer", role=Role.CUSTOMER)


def air_rate(rate_id: int, weight: int, price: str, fee: str = "0") -> Rate:
    return Rate(rate_id=rate_id, type=ManifestType.AIR, weight=weight, price=Decimal(price), processing_fee=Decimal(fee))


def sea_rate(rate_id: int, lo: str, hi: str, price: str, fee: str = "0") -> Rate:
    return Rate(
        rate_id=rate_id,
        type=ManifestType.SEA,
        min_cubic_feet=Decimal(lo),
        max_cubic_feet=Decimal(hi),
        price=Decimal(price),
        processing_fee=Decimal(fee),
    )


@dataclass
class InMemoryRates:
    rates: list[Rate] = field(default_factory=list)

    def _of(self, rate_type: ManifestType) -> list[Rate]:
        return [r for r in self.rates if r.type == rate_type]

    def find_air_rate(self, min_weight: int) -> Optional[Rate]:
        candidates = sorted((r for r in self._of(ManifestType.AIR) if r.weight >= min_weight), key=lambda r: r.weight)
        return candidates[0] if candidates else None

    def find_sea_rate_in_range(self, cubic_feet: Decimal) -> Optional[Rate]:
        candidates = sorted(
            (r for r in self._of(ManifestType.SEA) if r.min_cubic_feet <= cubic_feet <= r.max_cubic_feet),
            key=lambda r: r.min_cubic_feet,
        )
        return candidates[0] if candidates else None

    def find_next_sea_rate_above(self, cubic_feet: Decimal) -> Optional[Rate]:
        candidates = sorted(
            (r for r in self._of(ManifestType.SEA) if r.min_cubic_feet > cubic_feet),
            key=lambda r: r.min_cubic_feet,
        )
        return candidates[0] if candidates else None

    def find_highest_sea_rate(self) -> Optional[Rate]:
        candidates = sorted(self._of(ManifestType.SEA), key=lambda r: r.max_cubic_feet, reverse=True)
        return candidates[0] if candidates else None


class InMemoryManifests:
    def __init__(self, *manifests: Manifest):
        self.by_id = {m.manifest_id: m for m in manifests}
        self.audits: list[ManifestAudit] = []

    def get_by_id(self, manifest_id: int) -> Optional[Manifest]:
        return self.by_id.get(manifest_id)

    def list_all(self):
        return list(self.by_id.values())

    def set_open(self, manifest_id: int, *, is_open: bool) -> bool:
        if manifest_id not in self.by_id:
            return False
        self.by_id[manifest_id] = replace(self.by_id[manifest_id], is_open=is_open)
        return True

    def add_audit(self, *, manifest_id, user_id, action, reason, performed_at) -> int:
        audit = ManifestAudit(
            audit_id=len(self.audits) + 1,
            manifest_id=manifest_id,
            user_id=user_id,
            action=action,
            reason=reason,
            performed_at=performed_at,
        )
        self.audits.append(audit)
        return audit.audit_id

    def list_audits(self, manifest_id: int, *, limit: int):
        items = [a for a in self.audits if a.manifest_id == manifest_id]
        return list(reversed(items))[:limit]


class InMemoryPackages:
    def __init__(self, *packages: Package):
        self.by_id = {p.package_id: p for p in packages}
        self.history: list[PackageStatusHistory] = []

    def get_by_id(self, package_id: int) -> Optional[Package]:
        return self.by_id.get(package_id)

    def get_many(self, package_ids):
        return [self.by_id[i] for i in package_ids if i in self.by_id]

    def list_all(self, *, status=None, limit=None):
        items = [p for p in self.by_id.values() if status is None or p.status == status]
        return items[:limit] if limit else items

    def list_for_customer(self, user_id: int):
        return [p for p in self.by_id.values() if p.user_id == user_id]

    def list_for_manifest(self, manifest_id: int):
        return [p for p in self.by_id.values() if p.manifest_id == manifest_id]

    def list_for_consolidated(self, consolidated_package_id: int):
        return [p for p in self.by_id.values() if p.consolidated_package_id == consolidated_package_id]

    def count_by_status(self):
        counts: dict = {}
        for p in self.by_id.values():
            counts[p.status] = counts.get(p.status, 0) + 1
        return counts

    def manifest_delivery_counts(self, manifest_id: int):
        items = self.list_for_manifest(manifest_id)
        return len(items), sum(1 for p in items if p.status != PackageStatus.DELIVERED)

    def _update(self, package_id: int, **changes) -> bool:
        if package_id not in self.by_id:
            return False
        self.by_id[package_id] = replace(self.by_id[package_id], **changes)
        return True

    def update_status(self, package_id: int, status: PackageStatus) -> bool:
        return self._update(package_id, status=status)

    def update_freight_price(self, package_id: int, freight_price: Decimal) -> bool:
        return self._update(package_id, freight_price=freight_price)

    def update_fees(self, package_id: int, *, clearance_fee, storage_fee, delivery_fee, status) -> bool:
        return self._update(
            package_id,
            clearance_fee=clearance_fee,
            storage_fee=storage_fee,
            delivery_fee=delivery_fee,
            status=status,
        )

    def set_consolidation(self, package_ids, *, consolidated_package_id, consolidated_at) -> int:
        for package_id in package_ids:
            self._update(
                package_id,
                consolidated_package_id=consolidated_package_id,
                is_consolidated=consolidated_package_id is not None,
                consolidated_at=consolidated_at,
            )
        return len(package_ids)

    def add_status_history(self, *, package_id, old_status, new_status, changed_by, changed_at, notes=None) -> int:
        self.history.append(
            PackageStatusHistory(
                history_id=len(self.history) + 1,
                package_id=package_id,
                old_status=old_status,
                new_status=new_status,
                changed_by=changed_by,
                changed_at=changed_at,
                notes=notes,
            )
        )
        return len(self.history)


class RecordingAudit:
    """Stands in for AuditService; keeps (kind, action, payload) tuples."""

    def __init__(self):
        self.entries: list[tuple] = []

    def log_business_action(self, action, *, auditable_type=None, auditable_id=None, additional_data=None, user_id=None):
        self.entries.append(("business", action, (auditable_type, auditable_id), additional_data, user_id))

    def log_financial_transaction(self, action, transaction_data, *, customer_id=None, user_id=None):
        self.entries.append(("financial", action, transaction_data, customer_id, user_id))

    def log_security_event(self, action, additional_data=None, *, user_id=None):
        self.entries.append(("security", action, additional_data, user_id))

    def actions(self) -> list[str]:
        return [e[1] for e in self.entries]


def package(package_id: int, *, status=PackageStatus.PENDING, manifest_id: int = 1, user_id: int = 10, **kw) -> Package:
    return Package(
        package_id=package_id,
        user_id=user_id,
        manifest_id=manifest_id,
        tracking_number=kw.pop("tracking_number", f"TRK{package_id:04d}"),
        status=status,
        **kw,
    )


def manifest(manifest_id: int = 1, *, type=ManifestType.AIR, is_open=True, exchange_rate=None) -> Manifest:
    return Manifest(
        manifest_id=manifest_id,
        name=f"M-{manifest_id}",
        type=type,
        is_open=is_open,
        exchange_rate=exchange_rate,
    )


FIXED_NOW = datetime(2025, 3, 14, 9, 30, 0)


class InMemoryBackups:
    def __init__(self):
        self.by_id: dict = {}

    def add(self, backup) -> None:
        self.by_id[backup.backup_id] = backup

    def create(self, *, name, backup_type, created_by, metadata, created_at) -> int:
        backup_id = len(self.by_id) + 1
        self.by_id[backup_id] = Backup(
            backup_id=backup_id,
            name=name,
            type=backup_type,
            status=BackupStatus.PENDING,
            created_at=created_at,
            created_by=created_by,
            metadata=metadata,
        )
        return backup_id

    def get_by_id(self, backup_id):
        return self.by_id.get(backup_id)

    def _set(self, backup_id, **changes) -> bool:
        self.by_id[backup_id] = replace(self.by_id[backup_id], **changes)
        return True

    def mark_completed(self, backup_id, *, file_path, file_size, completed_at, metadata) -> bool:
        return self._set(
            backup_id,
            status=BackupStatus.COMPLETED,
            file_path=file_path,
            file_size=file_size,
            completed_at=completed_at,
            metadata=metadata,
        )

    def mark_failed(self, backup_id, *, metadata) -> bool:
        return self._set(backup_id, status=BackupStatus.FAILED, metadata=metadata)

    def mark_cleaned_up(self, backup_id) -> bool:
        return self._set(backup_id, status=BackupStatus.CLEANED_UP)

    def _newest_first(self):
        return sorted(self.by_id.values(), key=lambda b: b.created_at, reverse=True)

    def list_recent(self, *, limit):
        return self._newest_first()[:limit]

    def list_since(self, since):
        return [b for b in self._newest_first() if b.created_at >= since]

    def count(self, *, status=None) -> int:
        return sum(1 for b in self.by_id.values() if status is None or b.status == status)

    def latest(self, *, status=None):
        items = [b for b in self._newest_first() if status is None or b.status == status]
        return items[0] if items else None

    def list_completed_before(self, backup_type, cutoff):
        return sorted(
            (
                b
                for b in self.by_id.values()
                if b.type == backup_type and b.status == BackupStatus.COMPLETED and b.created_at < cutoff
            ),
            key=lambda b: b.created_at,
        )


class InMemoryAuditLogs:
    def __init__(self, *, fail: bool = False):
        self.rows: list[AuditLog] = []
        self.fail = fail

    def create(self, **values) -> int:
        if self.fail:
            raise RuntimeError("database is gone")
        log_id = len(self.rows) + 1
        self.rows.append(AuditLog(audit_log_id=log_id, **values))
        return log_id

    def search(self, filters, *, limit):
        return self.rows[:limit]

    def _matching(self, event_types, cutoff):
        return [r for r in self.rows if r.event_type in event_types and r.created_at < cutoff]

    def count_older_than(self, *, event_types, cutoff) -> int:
        return len(self._matching(event_types, cutoff))

    def oldest_before(self, *, event_types, cutoff):
        rows = self._matching(event_types, cutoff)
        return min(r.created_at for r in rows) if rows else None

    def delete_older_than(self, *, event_types, cutoff) -> int:
        doomed = self._matching(event_types, cutoff)
        self.rows = [r for r in self.rows if r not in doomed]
        return len(doomed)

    def model_rows(self, model_name: str, event_type: AuditEventType) -> list[AuditLog]:
        return [r for r in self.rows if r.auditable_type == model_name and r.event_type == event_type]


def real_audit(logs: InMemoryAuditLogs) -> tuple[AuditService, AuditObserver]:
    """AuditService and model observer as the app wires them, minus the request context."""
    service = AuditService(logs, context_provider=AuditContext, clock=lambda: FIXED_NOW)
    return service, AuditObserver(service, auditable_models=AUDITABLE_MODELS)
