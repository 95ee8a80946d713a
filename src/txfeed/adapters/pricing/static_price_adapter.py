from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from txfeed.ports.price_port import PricePort


class StaticPriceAdapter(PricePort):
    """Fixed prices for dev runs and tests; `fail=True` simulates an outage."""

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None, fail: bool = False) -> None:
        self.prices = dict(prices or {})
        self.fail = fail
        self.calls: List[List[str]] = []

    def get_token_prices(self, asset_ids, currency="usd"):
        self.calls.append(list(asset_ids))
        if self.fail:
            return None
        return {a: self.prices[a] for a in asset_ids if a in self.prices}
