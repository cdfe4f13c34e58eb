from __future__ import annotations

from decimal import Decimal

from src.freight_system.freight_system.audit.observer import AuditObserver, snapshot
from src.freight_system.freight_system.core.enums import ManifestType, PackageStatus, Role
from src.freight_system.freight_system.manifests.lock_service import ManifestLockService
from src.freight_system.freight_system.packages.observer import PackageAuditObserver
from src.freight_system.freight_system.users.model import User
from tests.fakes import FIXED_NOW, InMemoryManifests, InMemoryPackages, manifest, package


class RecordingAuditService:
    def __init__(self):
        self.updates = []
        self.business = []

    def log_model_updated(self, model_name, model_id, old_values, new_values, *, user_id=None, additional_data=None):
        self.updates.append((model_name, model_id, old_values, new_values, additional_data))

    def log_model_created(self, model_name, model_id, new_values, *, user_id=None):
        self.updates.append((model_name, model_id, None, new_values, None))

    def log_business_action(self, action, *, auditable_type=None, auditable_id=None, additional_data=None, user_id=None):
        self.business.append((action, auditable_type, auditable_id, additional_data))


MODELS = {"User": {"excluded_fields": ["password_hash"]}, "Package": {}}


def _user(**kw):
    values = dict(user_id=3, full_name="Ann", username="ann", email=None, password_hash="h1", role=Role.CUSTOMER)
    values.update(kw)
    return User(**values)


def test_only_changed_fields_are_logged():
    audit = RecordingAuditService()
    AuditObserver(audit, auditable_models=MODELS).updated("User", 3, _user(), _user(role=Role.ADMIN, password_hash="h2"))

    model_name, model_id, old, new, extra = audit.updates[0]
    assert (model_name, model_id) == ("User", 3)
    assert old == {"role": "customer"}
    assert new == {"role": "admin"}
    assert extra["changed_fields"] == ["role"]


def test_no_change_writes_nothing():
    audit = RecordingAuditService()
    AuditObserver(audit, auditable_models=MODELS).updated("User", 3, _user(), _user(password_hash="h2"))
    assert audit.updates == []


def test_unregistered_model_is_ignored():
    audit = RecordingAuditService()
    AuditObserver(audit, auditable_models=MODELS).created("Rate", 1, {"price": 1})
    assert audit.updates == []


def _package_observer(pkgs, manifests):
    audit = RecordingAuditService()
    lock = ManifestLockService(manifests, pkgs, clock=lambda: FIXED_NOW)
    observer = PackageAuditObserver(audit, AuditObserver(audit, auditable_models=MODELS), manifests, lock)
    return observer, audit


def test_status_and_fee_changes_become_business_actions():
    before = package(1, status=PackageStatus.CUSTOMS, freight_price=Decimal("40"))
    after = package(1, status=PackageStatus.READY, freight_price=Decimal("40"), storage_fee=Decimal("5"))
    observer, audit = _package_observer(InMemoryPackages(after), InMemoryManifests(manifest()))

    observer.updated(before, after, user_id=1)

    actions = {b[0]: b[3] for b in audit.business}
    assert actions["package_status_changed"]["old_status"] == "customs"
    assert actions["package_status_changed"]["tracking_number"] == "TRK0001"
    assert actions["package_fees_updated"]["fee_changes"] == {"storage_fee": Decimal("5")}
    assert actions["package_fees_updated"]["new_total_cost"] == Decimal("45")


def test_last_delivery_auto_closes_manifest():
    before = package(1, status=PackageStatus.READY)
    after = package(1, status=PackageStatus.DELIVERED)
    manifests = InMemoryManifests(manifest(type=ManifestType.SEA))
    observer, audit = _package_observer(InMemoryPackages(after), manifests)

    observer.updated(before, after, user_id=1)

    assert manifests.get_by_id(1).is_open is False
    assert "manifest_auto_closed" in [b[0] for b in audit.business]


def test_consolidation_link_is_reported():
    before = package(1)
    after = package(1, consolidated_package_id=4, is_consolidated=True)
    observer, audit = _package_observer(InMemoryPackages(after), InMemoryManifests(manifest()))

    observer.updated(before, after)

    assert [b[0] for b in audit.business] == ["package_consolidated"]


def test_created_snapshot_leaves_out_secrets():
    audit = RecordingAuditService()
    models = {"User": {"excluded_fields": ["password_hash", "remember_token"]}}

    AuditObserver(audit, auditable_models=models).created(
        "User", 3, {**snapshot(_user()), "remember_token": "abc", "api_token": "xyz"}
    )

    _, _, _, new_values, _ = audit.updates[0]
    assert new_values["username"] == "ann"
    assert new_values["role"] == "customer"
    assert not {"password_hash", "remember_token", "api_token"} & set(new_values)
