from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from txfeed.config import settings
from txfeed.core.logger import get_logger
from txfeed.core.models import FormattedEvent, PricedEvent
from txfeed.core.tokens import TOKENS, token_for_asset
from txfeed.ports.price_port import PricePort

logger = get_logger(__name__)


class PriceCache:
    """
    Read-through price cache keyed by price key ("solana", "usd-coin").
    A failed refresh keeps the last known good value.
    """

    def __init__(self, defaults: Optional[Mapping[str, Decimal]] = None) -> None:
        self._prices: Dict[str, Decimal] = dict(settings.DEFAULT_PRICES if defaults is None else defaults)

    def get(self, key: str) -> Optional[Decimal]:
        return self._prices.get(key)

    def update(self, fresh: Optional[Mapping[str, Decimal]]) -> None:
        if not fresh:
            return
        for key, price in fresh.items():
            if price is not None:
                self._prices[key] = price

    def snapshot(self) -> Dict[str, Decimal]:
        return dict(self._prices)


class PriceAnnotator:
    """
    Attaches a fiat value to events. The events themselves are never touched;
    each one is wrapped in a PricedEvent.
    """

    def __init__(self, prices: PricePort, cache: Optional[PriceCache] = None) -> None:
        self.prices = prices
        self.cache = cache or PriceCache()

    async def refresh(self, keys: Optional[Iterable[str]] = None) -> Dict[str, Decimal]:
        keys = list(keys) if keys is not None else [t.price_key for t in TOKENS.values()]
        loop = asyncio.get_running_loop()
        # the price port is blocking I/O
        fresh = await loop.run_in_executor(None, self.prices.get_token_prices, keys)
        if fresh is None:
            logger.info("price_refresh_kept_last_known", keys=keys)
        self.cache.update(fresh)
        return self.cache.snapshot()

    def price_for(self, asset: str) -> Optional[Decimal]:
        info = token_for_asset(asset)
        if info is None:
            return None
        return self.cache.get(info.price_key)

    def annotate(self, events: Iterable[FormattedEvent]) -> List[PricedEvent]:
        out: List[PricedEvent] = []
        for ev in events:
            price = self.price_for(ev.asset)
            out.append(
                PricedEvent(
                    event=ev,
                    price=price,
                    usd_value=(ev.amount * price) if price is not None else None,
                )
            )
        return out
