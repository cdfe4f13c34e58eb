from __future__ import annotations

from decimal import Decimal

import pytest

from src.freight_system.freight_system.core.enums import ManifestType
from src.freight_system.freight_system.core.exceptions import AirRateNotFoundError, ValidationError
from src.freight_system.freight_system.rates.calculators.air_calculator import AirRateCalculator
from tests.fakes import InMemoryRates, air_rate, manifest, package, sea_rate


def _calc(*rates):
    return AirRateCalculator(InMemoryRates(list(rates)))


def test_weight_is_rounded_up_to_the_next_bracket():
    calc = _calc(air_rate(1, 10, "25", "5"))
    charge = calc.calculate_charge(package(1, weight=Decimal("9.5")), manifest(exchange_rate=Decimal("1.5")))
    assert charge == Decimal("45")


def test_fractional_weight_uses_ceiling_bracket():
    calc = _calc(air_rate(1, 5, "20"), air_rate(2, 10, "30"))
    charge = calc.calculate_charge(package(1, weight=Decimal("4.1")), manifest())
    assert charge == Decimal("20")


@pytest.mark.parametrize("exchange_rate", [None, Decimal("0")])
def test_missing_exchange_rate_counts_as_one(exchange_rate):
    calc = _calc(air_rate(1, 5, "20"))
    charge = calc.calculate_charge(package(1, weight=Decimal("5")), manifest(exchange_rate=exchange_rate))
    assert charge == Decimal("20")


def test_weight_between_brackets_uses_the_next_larger_one():
    calc = _calc(air_rate(1, 5, "10"), air_rate(2, 15, "30"))
    charge = calc.calculate_charge(package(1, weight=Decimal("10")), manifest())
    assert charge == Decimal("30")


def test_missing_bracket_raises_with_rounded_weight():
    calc = _calc(sea_rate(1, "1", "5", "10"))
    with pytest.raises(AirRateNotFoundError, match="No air shipping rate found for 5 lbs"):
        calc.calculate_charge(package(1, weight=Decimal("4.2")), manifest())


def test_sea_manifest_is_rejected():
    calc = _calc(air_rate(1, 5, "20"))
    with pytest.raises(ValidationError, match="air manifest"):
        calc.calculate_charge(package(1, weight=Decimal("3")), manifest(type=ManifestType.SEA))


@pytest.mark.parametrize("weight", [None, Decimal("0"), Decimal("-5")])
def test_weight_must_be_positive(weight):
    calc = _calc(air_rate(1, 5, "20"))
    with pytest.raises(ValidationError, match="valid weight greater than 0"):
        calc.calculate_charge(package(1, weight=weight), manifest())


def test_breakdown_reports_each_step():
    calc = _calc(air_rate(1, 8, "20", "5"))
    breakdown = calc.get_breakdown(package(1, weight=Decimal("7.3")), manifest(exchange_rate=Decimal("1.25")))

    assert breakdown["weight"] == Decimal("7.3")
    assert breakdown["rounded_weight"] == 8
    assert breakdown["rate_weight"] == 8
    assert breakdown["base_price"] == Decimal("20")
    assert breakdown["processing_fee"] == Decimal("5")
    assert breakdown["subtotal"] == Decimal("25")
    assert breakdown["exchange_rate"] == Decimal("1.25")
    assert breakdown["total"] == Decimal("31.25")
