from __future__ import annotations

from dataclasses import dataclass

from ...core.enums import ManifestType
from ...core.exceptions import ValidationError
from ...manifests.model import Manifest
from ..repository import RateRepository
from .air_calculator import AirRateCalculator
from .base import RateCalculator
from .sea_calculator import SeaRateCalculator


@dataclass(frozen=True)
class RateCalculatorFactory:
    rates: RateRepository

    def for_type(self, manifest_type: ManifestType) -> RateCalculator:
        if manifest_type == ManifestType.AIR:
            return AirRateCalculator(self.rates)
        if manifest_type == ManifestType.SEA:
            return SeaRateCalculator(self.rates)
        raise ValidationError(f"Unsupported manifest type: {manifest_type}")

    def for_manifest(self, manifest: Manifest) -> RateCalculator:
        return self.for_type(manifest.type)
