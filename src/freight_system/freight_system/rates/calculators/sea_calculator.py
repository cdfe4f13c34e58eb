from __future__ import annotations

from decimal import Decimal

from ...core.enums import ManifestType
from ...core.exceptions import SeaRateNotFoundError, ValidationError
from ...manifests.model import Manifest
from ...packages.model import Package
from ..model import Rate
from ..repository import RateRepository
from ..volume import calculate_cubic_feet
from .base import RateCalculator, format_quantity


class SeaRateCalculator(RateCalculator):
    """Volume pricing: (price + fee) per cubic foot of the chosen bracket.

    A volume that falls in a gap between brackets uses the next bracket up;
    anything above the table uses the highest bracket.
    """

    def __init__(self, rates: RateRepository):
        self._rates = rates

    def _validate(self, package: Package, manifest: Manifest) -> Decimal:
        if manifest.type != ManifestType.SEA:
            raise ValidationError("Package must belong to a sea manifest")
        cubic_feet = package.cubic_feet
        if cubic_feet is None:
            cubic_feet = calculate_cubic_feet(package.length_inches, package.width_inches, package.height_inches)
        if cubic_feet is None or cubic_feet <= 0:
            raise ValidationError("Package must have valid cubic feet greater than 0")
        return Decimal(str(cubic_feet))

    def _find_rate(self, cubic_feet: Decimal) -> Rate:
        rate = (
            self._rates.find_sea_rate_in_range(cubic_feet)
            or self._rates.find_next_sea_rate_above(cubic_feet)
            or self._rates.find_highest_sea_rate()
        )
        if rate is None:
            raise SeaRateNotFoundError(
                f"No sea shipping rate found for {format_quantity(cubic_feet)} cubic feet"
            )
        return rate

    def calculate_charge(self, package: Package, manifest: Manifest) -> Decimal:
        cubic_feet = self._validate(package, manifest)
        rate = self._find_rate(cubic_feet)
        return rate.unit_total * cubic_feet * manifest.effective_exchange_rate

    def get_breakdown(self, package: Package, manifest: Manifest) -> dict:
        cubic_feet = self._validate(package, manifest)
        rate = self._find_rate(cubic_feet)
        exchange_rate = manifest.effective_exchange_rate
        subtotal = rate.unit_total * cubic_feet
        return {
            "cubic_feet": cubic_feet,
            "rate_min_cubic_feet": rate.min_cubic_feet,
            "rate_max_cubic_feet": rate.max_cubic_feet,
            "base_price": rate.price,
            "processing_fee": rate.processing_fee,
            "price_per_cubic_foot": rate.unit_total,
            "subtotal": subtotal,
            "exchange_rate": exchange_rate,
            "total": subtotal * exchange_rate,
        }
