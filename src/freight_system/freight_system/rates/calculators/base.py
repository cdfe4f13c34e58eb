from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from ...manifests.model import Manifest
from ...packages.model import Package


def format_quantity(value: Decimal) -> str:
    """Render Decimal("5.0") as "5" for user-facing messages."""
    return format(Decimal(str(value)).normalize(), "f")


class RateCalculator(ABC):
    """Strategy: price one package against the rate table of its manifest type."""

    @abstractmethod
    def calculate_charge(self, package: Package, manifest: Manifest) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def get_breakdown(self, package: Package, manifest: Manifest) -> dict:
        raise NotImplementedError
