from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol

from .model import Rate


class RateRepository(Protocol):
    def find_air_rate(self, min_weight: int) -> Optional[Rate]:
        """Smallest air bracket with weight >= min_weight."""
        raise NotImplementedError

    def find_sea_rate_in_range(self, cubic_feet: Decimal) -> Optional[Rate]:
        raise NotImplementedError

    def find_next_sea_rate_above(self, cubic_feet: Decimal) -> Optional[Rate]:
        """Sea bracket with the smallest min_cubic_feet > cubic_feet."""
        raise NotImplementedError

    def find_highest_sea_rate(self) -> Optional[Rate]:
        raise NotImplementedError
