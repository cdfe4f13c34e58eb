from __future__ import annotations

from decimal import Decimal

import pytest

from src.freight_system.freight_system.core.enums import PackageStatus
from src.freight_system.freight_system.core.exceptions import ManifestLockedError, ValidationError
from src.freight_system.freight_system.packages.fee_service import READY_NOTE, PackageFeeService
from tests.fakes import ADMIN, FIXED_NOW, InMemoryManifests, InMemoryPackages, RecordingAudit, manifest, package

FEES = {"customs_duty": "12.50", "storage_fee": "3", "delivery_fee": "0"}


def _service(pkgs, manifests=None, audit=None):
    return PackageFeeService(
        pkgs,
        manifests or InMemoryManifests(manifest()),
        audit or RecordingAudit(),
        clock=lambda: FIXED_NOW,
    )


def test_update_fees_sets_ready_and_logs_transaction():
    pkgs = InMemoryPackages(package(1, status=PackageStatus.CUSTOMS, freight_price=Decimal("40")))
    audit = RecordingAudit()

    result = _service(pkgs, audit=audit).update_fees_and_set_ready(pkgs.get_by_id(1), FEES, ADMIN)

    assert result.success
    assert result.message == "Package fees updated and status set to ready for pickup"
    assert result.total_cost == Decimal("55.50")
    stored = pkgs.get_by_id(1)
    assert stored.clearance_fee == Decimal("12.50")
    assert stored.status == PackageStatus.READY
    assert pkgs.history[0].notes == READY_NOTE
    assert audit.actions() == ["package_fees_updated"]


@pytest.mark.parametrize("field, label", [("customs_duty", "Customs duty"), ("storage_fee", "Storage fee")])
def test_negative_or_garbage_fee_is_rejected(field, label):
    pkgs = InMemoryPackages(package(1, status=PackageStatus.CUSTOMS))
    service = _service(pkgs)

    errors = service.validate_fees({**FEES, field: "-1"})
    assert errors == {field: f"{label} must be a valid positive number"}

    with pytest.raises(ValidationError, match=label):
        service.update_fees_and_set_ready(pkgs.get_by_id(1), {**FEES, field: "abc"}, ADMIN)
    assert pkgs.get_by_id(1).status == PackageStatus.CUSTOMS


def test_closed_manifest_rejects_fee_update():
    pkgs = InMemoryPackages(package(1, status=PackageStatus.CUSTOMS))
    service = _service(pkgs, InMemoryManifests(manifest(is_open=False)))

    with pytest.raises(ManifestLockedError):
        service.update_fees_and_set_ready(pkgs.get_by_id(1), FEES, ADMIN)


def test_preview_does_not_write():
    pkgs = InMemoryPackages(package(1, status=PackageStatus.CUSTOMS, freight_price=Decimal("40")))

    preview = _service(pkgs).get_fee_update_preview(pkgs.get_by_id(1), FEES)

    assert preview["valid"] is True
    assert preview["new_total_cost"] == Decimal("55.50")
    assert preview["cost_difference"] == Decimal("15.50")
    assert preview["package"]["new_status"] == "Ready for Pickup"
    assert pkgs.get_by_id(1).clearance_fee == Decimal("0")
