from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Optional

from txfeed.config import settings
from txfeed.core.errors import DataSourceError
from txfeed.core.logger import get_logger
from txfeed.core.models import Holding, Portfolio
from txfeed.core.tokens import SOL, USDC, TokenInfo
from txfeed.ports.chain_data_port import ChainDataPort
from txfeed.services.price_annotator import PriceAnnotator

logger = get_logger(__name__)


class PortfolioService:
    """SOL and USDC holdings of a wallet; a failed balance read counts as 0."""

    def __init__(self, chain: ChainDataPort, annotator: PriceAnnotator) -> None:
        self.chain = chain
        self.annotator = annotator

    async def get_sol_balance(self, address: str) -> Decimal:
        try:
            lamports = await self.chain.get_balance(address)
        except DataSourceError as exc:
            logger.warning("sol_balance_failed", wallet_id=address, error=str(exc))
            return Decimal("0")
        return Decimal(lamports) / Decimal(settings.LAMPORTS_PER_SOL)

    async def get_usdc_balance(self, address: str) -> Decimal:
        try:
            accounts = await self.chain.get_token_balances_by_owner(address)
        except DataSourceError as exc:
            logger.warning("usdc_balance_failed", wallet_id=address, error=str(exc))
            return Decimal("0")
        for acct in accounts:
            if acct.mint == USDC.mint:
                return acct.ui_amount
        return Decimal("0")

    async def get_portfolio(self, address: str, refresh_prices: bool = True) -> Portfolio:
        if refresh_prices:
            sol, usdc, _ = await asyncio.gather(
                self.get_sol_balance(address),
                self.get_usdc_balance(address),
                self.annotator.refresh(),
            )
        else:
            sol, usdc = await asyncio.gather(
                self.get_sol_balance(address),
                self.get_usdc_balance(address),
            )

        return Portfolio(
            address=address,
            holdings=[self._holding(SOL, sol), self._holding(USDC, usdc)],
        )

    def _holding(self, info: TokenInfo, amount: Decimal) -> Holding:
        price: Optional[Decimal] = self.annotator.cache.get(info.price_key)
        price = price if price is not None else Decimal("0")
        return Holding(
            symbol=info.symbol,
            name=info.name,
            amount=amount,
            price=price,
            usd_value=amount * price,
        )
