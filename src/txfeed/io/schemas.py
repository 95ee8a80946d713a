from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from txfeed.core.models import FormattedEvent, Portfolio, PricedEvent, TransactionSection


def _dec_to_str(x: Decimal) -> str:
    # keep as string for JSON precision safety
    return format(x, "f")


def event_to_dict(e: FormattedEvent) -> Dict[str, Any]:
    return {
        "signature": e.signature,
        "type": e.type.value,
        "asset": e.asset,
        "amount": _dec_to_str(e.amount),
        "from": e.from_address,
        "to": e.to_address,
        "time": e.time.isoformat() if e.time is not None else None,
    }


def priced_event_to_dict(p: PricedEvent) -> Dict[str, Any]:
    d = event_to_dict(p.event)
    d["price"] = _dec_to_str(p.price) if p.price is not None else None
    d["usd_value"] = _dec_to_str(p.usd_value) if p.usd_value is not None else None
    return d


def sections_to_list(sections: Sequence[TransactionSection]) -> List[Dict[str, Any]]:
    return [
        {
            "title": s.title,
            "events": [event_to_dict(e) for e in s.events],
        }
        for s in sections
    ]


def history_to_dict(
    address: str,
    priced: Sequence[PricedEvent],
    sections: Sequence[TransactionSection],
    has_more: bool,
    portfolio: Optional[Portfolio] = None,
) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "address": address,
        "has_more": has_more,
        "events": [priced_event_to_dict(p) for p in priced],
        "sections": sections_to_list(sections),
    }
    if portfolio is not None:
        out["portfolio"] = {
            "total_usd": _dec_to_str(portfolio.total_usd),
            "holdings": [
                {
                    "symbol": h.symbol,
                    "name": h.name,
                    "amount": _dec_to_str(h.amount),
                    "price": _dec_to_str(h.price),
                    "usd_value": _dec_to_str(h.usd_value),
                }
                for h in portfolio.holdings
            ],
        }
    return out
