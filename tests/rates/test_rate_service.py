from __future__ import annotations

from decimal import Decimal

import pytest

from src.freight_system.freight_system.core.exceptions import ManifestLockedError, NotFoundError
from src.freight_system.freight_system.rates.calculators.factory import RateCalculatorFactory
from src.freight_system.freight_system.rates.service import RateService
from tests.fakes import InMemoryManifests, InMemoryPackages, InMemoryRates, air_rate, manifest, package


class RecordingObserver:
    def __init__(self):
        self.calls = []

    def updated(self, before, after, *, user_id=None):
        self.calls.append((before, after, user_id))


def _service(pkgs, manifests, observer=None):
    rates = InMemoryRates([air_rate(1, 10, "10.333", "0")])
    return RateService(pkgs, manifests, RateCalculatorFactory(rates), observer=observer)


def test_calculate_freight_stores_rounded_charge_and_notifies():
    pkgs = InMemoryPackages(package(1, weight=Decimal("3")))
    observer = RecordingObserver()
    service = _service(pkgs, InMemoryManifests(manifest()), observer)

    charge = service.calculate_freight(1, user_id=7)

    assert charge == Decimal("10.33")
    assert pkgs.get_by_id(1).freight_price == Decimal("10.33")
    before, after, user_id = observer.calls[0]
    assert before.freight_price == Decimal("0")
    assert after.freight_price == Decimal("10.33")
    assert user_id == 7


def test_calculate_freight_refuses_closed_manifest():
    pkgs = InMemoryPackages(package(1, weight=Decimal("3")))
    service = _service(pkgs, InMemoryManifests(manifest(is_open=False)))

    with pytest.raises(ManifestLockedError):
        service.calculate_freight(1)
    assert pkgs.get_by_id(1).freight_price == Decimal("0")


def test_unknown_package_raises_not_found():
    service = _service(InMemoryPackages(), InMemoryManifests(manifest()))
    with pytest.raises(NotFoundError):
        service.get_breakdown(99)
