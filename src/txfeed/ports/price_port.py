from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Optional


class PricePort(ABC):

    @abstractmethod
    def get_token_prices(
        self,
        asset_ids: List[str],
        currency: str = "usd",
    ) -> Optional[Dict[str, Decimal]]:
        """Prices keyed by asset id; None when the lookup failed."""
        raise NotImplementedError
