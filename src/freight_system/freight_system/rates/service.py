from __future__ import annotations

import logging
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.exceptions import NotFoundError, ValidationError
from ..manifests.lock_service import ensure_open
from ..manifests.repository import ManifestRepository
from ..packages.repository import PackageRepository
from .calculators.factory import RateCalculatorFactory

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


class RateService:
    def __init__(
        self,
        packages: PackageRepository,
        manifests: ManifestRepository,
        factory: RateCalculatorFactory,
        *,
        observer=None,
    ):
        self._packages = packages
        self._manifests = manifests
        self._factory = factory
        self._observer = observer

    def _load(self, package_id: int):
        package = self._packages.get_by_id(package_id)
        if not package:
            raise NotFoundError("Package not found")
        manifest = self._manifests.get_by_id(package.manifest_id)
        if not manifest:
            raise NotFoundError("Manifest not found")
        return package, manifest

    def get_breakdown(self, package_id: int) -> dict:
        package, manifest = self._load(package_id)
        return self._factory.for_manifest(manifest).get_breakdown(package, manifest)

    def calculate_freight(self, package_id: int, *, user_id: Optional[int] = None) -> Decimal:
        """Price the package and store the result as its freight_price."""
        package, manifest = self._load(package_id)
        ensure_open(manifest)

        charge = self._factory.for_manifest(manifest).calculate_charge(package, manifest)
        charge = charge.quantize(_CENTS, rounding=ROUND_HALF_UP)
        if not self._packages.update_freight_price(package.package_id, charge):
            raise ValidationError("Failed to update freight price")

        logger.info("Freight for package %s set to %s", package.package_id, charge)
        if self._observer is not None:
            self._observer.updated(package, replace(package, freight_price=charge), user_id=user_id)
        return charge
