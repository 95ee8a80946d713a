from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from txfeed.config import settings


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    name: str
    price_key: str
    mint: Optional[str]
    decimals: int


SOL = TokenInfo(symbol="SOL", name="Solana", price_key="solana", mint=None, decimals=9)
USDC = TokenInfo(
    symbol="USDC",
    name="USD Coin",
    price_key="usd-coin",
    mint=settings.USDC_MINT,
    decimals=6,
)

# Only these two are recognised; any other mint is shown by its address.
TOKENS: Dict[str, TokenInfo] = {
    SOL.symbol: SOL,
    USDC.symbol: USDC,
}

_BY_MINT: Dict[str, TokenInfo] = {t.mint: t for t in TOKENS.values() if t.mint}


def symbol_for_mint(mint: str) -> str:
    info = _BY_MINT.get(mint)
    return info.symbol if info else mint


def token_for_asset(asset: str) -> Optional[TokenInfo]:
    """Look up by symbol first, then by mint."""
    return TOKENS.get(asset) or _BY_MINT.get(asset)