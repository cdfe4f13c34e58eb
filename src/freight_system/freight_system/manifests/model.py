from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import ManifestAuditAction, ManifestType


@dataclass(frozen=True)
class Manifest:
    """A shipment batch (one flight or voyage)."""

    manifest_id: int
    name: str
    type: ManifestType
    is_open: bool = True
    exchange_rate: Optional[Decimal] = None
    manifest_number: Optional[str] = None
    shipment_date: Optional[date] = None

    @property
    def effective_exchange_rate(self) -> Decimal:
        # Missing or zero rates mean amounts are already in local currency.
        if not self.exchange_rate:
            return Decimal("1")
        return Decimal(str(self.exchange_rate))

    @property
    def status_label(self) -> str:
        return "Open" if self.is_open else "Closed"


@dataclass(frozen=True)
class ManifestAudit:
    audit_id: int
    manifest_id: int
    user_id: Optional[int]
    action: ManifestAuditAction
    reason: str
    performed_at: datetime
