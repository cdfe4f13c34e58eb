from __future__ import annotations

import math
from decimal import Decimal

from ...core.enums import ManifestType
from ...core.exceptions import AirRateNotFoundError, ValidationError
from ...manifests.model import Manifest
from ...packages.model import Package
from ..model import Rate
from ..repository import RateRepository
from .base import RateCalculator


class AirRateCalculator(RateCalculator):
    """Weight-bracket pricing: ceil(weight) -> smallest bracket covering it."""

    def __init__(self, rates: RateRepository):
        self._rates = rates

    def _validate(self, package: Package, manifest: Manifest) -> Decimal:
        if manifest.type != ManifestType.AIR:
            raise ValidationError("Package must belong to an air manifest")
        if package.weight is None or package.weight <= 0:
            raise ValidationError("Package must have valid weight greater than 0")
        return Decimal(str(package.weight))

    def _find_rate(self, rounded_weight: int) -> Rate:
        rate = self._rates.find_air_rate(rounded_weight)
        if rate is None:
            raise AirRateNotFoundError(f"No air shipping rate found for {rounded_weight} lbs")
        return rate

    def calculate_charge(self, package: Package, manifest: Manifest) -> Decimal:
        weight = self._validate(package, manifest)
        rate = self._find_rate(math.ceil(weight))
        return rate.unit_total * manifest.effective_exchange_rate

    def get_breakdown(self, package: Package, manifest: Manifest) -> dict:
        weight = self._validate(package, manifest)
        rounded = math.ceil(weight)
        rate = self._find_rate(rounded)
        exchange_rate = manifest.effective_exchange_rate
        subtotal = rate.unit_total
        return {
            "weight": weight,
            "rounded_weight": rounded,
            "rate_weight": rate.weight,
            "base_price": rate.price,
            "processing_fee": rate.processing_fee,
            "subtotal": subtotal,
            "exchange_rate": exchange_rate,
            "total": subtotal * exchange_rate,
        }
