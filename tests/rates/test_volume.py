from decimal import Decimal

from src.freight_system.freight_system.rates.volume import calculate_cubic_feet


def test_cubic_feet_from_inches():
    assert calculate_cubic_feet(12, 12, 12) == Decimal("1.000")


def test_cubic_feet_rounds_half_up_to_three_places():
    # 10 * 10 * 10 / 1728 = 0.5787...
    assert calculate_cubic_feet(10, 10, 10) == Decimal("0.579")


def test_missing_side_gives_none():
    assert calculate_cubic_feet(10, None, 10) is None
