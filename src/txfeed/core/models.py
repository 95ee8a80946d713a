from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from txfeed.core.enums import EventType, FetchStatus


# Event models

@dataclass(frozen=True)
class Counterparty:
    from_address: str
    to_address: str


@dataclass(frozen=True)
class FormattedEvent:
    """
    One balance movement of the tracked wallet inside one transaction.
    """

    signature: str
    type: EventType
    asset: str              # "SOL", a known symbol, or the raw mint
    amount: Decimal         # human units, always > 0

    from_address: str
    to_address: str

    time: Optional[datetime] = None


@dataclass(frozen=True)
class PricedEvent:
    event: FormattedEvent
    price: Optional[Decimal]
    usd_value: Optional[Decimal]


@dataclass
class TransactionSection:
    title: str
    events: List[FormattedEvent] = field(default_factory=list)


# Paging models

@dataclass(frozen=True)
class HistoryPage:
    events: List[FormattedEvent]
    last_signature: Optional[str]   # oldest signature in the page
    signature_count: int

    @property
    def is_empty(self) -> bool:
        return self.signature_count == 0


@dataclass(frozen=True)
class PaginationCursor:
    last_signature: Optional[str] = None
    has_more: bool = True


@dataclass(frozen=True)
class PaginationState:
    events: List[FormattedEvent] = field(default_factory=list)
    has_more: bool = True
    is_loading: bool = False
    is_loading_more: bool = False
    error: Optional[str] = None
    status: FetchStatus = FetchStatus.IDLE


# Portfolio models

@dataclass(frozen=True)
class Holding:
    symbol: str
    name: str
    amount: Decimal
    price: Decimal
    usd_value: Decimal


@dataclass
class Portfolio:
    address: str
    holdings: List[Holding] = field(default_factory=list)

    @property
    def total_usd(self) -> Decimal:
        return sum((h.usd_value for h in self.holdings), Decimal("0"))
