from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from txfeed.config import settings
from txfeed.core.dto import RawLedgerTransaction, TokenBalance
from txfeed.core.enums import EventType
from txfeed.core.logger import get_logger
from txfeed.core.models import Counterparty, FormattedEvent
from txfeed.core.tokens import SOL, symbol_for_mint
from txfeed.services.counterparty import (
    EXTERNAL,
    balance_delta,
    resolve_native_counterparty,
    resolve_token_counterparty,
)

logger = get_logger(__name__)

LAMPORTS_PER_SOL = Decimal(settings.LAMPORTS_PER_SOL)


def block_time_to_datetime(block_time: Optional[int]) -> Optional[datetime]:
    if block_time is None:
        return None
    return datetime.fromtimestamp(int(block_time), tz=timezone.utc)


def format_transactions(
    tracked: str, transactions: Iterable[Optional[RawLedgerTransaction]]
) -> List[FormattedEvent]:
    """
    Flatten raw transactions into wallet events, in input order.
    """
    out: List[FormattedEvent] = []
    for tx in transactions:
        if tx is None:
            continue
        out.extend(format_transaction(tracked, tx))
    return out


def format_transaction(tracked: str, tx: RawLedgerTransaction) -> List[FormattedEvent]:
    if tx.failed:
        logger.debug("transaction_skipped", signature=tx.signature, reason="failed_on_chain")
        return []
    if not tx.has_meta or not tx.account_keys:
        logger.debug("transaction_skipped", signature=tx.signature, reason="missing_meta")
        return []

    events: List[FormattedEvent] = []
    time = block_time_to_datetime(tx.block_time)

    native = _native_event(tracked, tx, time)
    if native is not None:
        events.append(native)

    pre_by_index = {b.account_index: b for b in tx.pre_token_balances}
    for post in tx.post_token_balances:
        if post.owner != tracked:
            continue
        ev = _token_event(tracked, tx, post, pre_by_index.get(post.account_index), time)
        if ev is not None:
            events.append(ev)

    return events


# -------------------------
# Legs
# -------------------------

def _native_event(
    tracked: str, tx: RawLedgerTransaction, time: Optional[datetime]
) -> Optional[FormattedEvent]:
    idx = tx.index_of(tracked)
    if idx == -1:
        return None

    # no observed balance on either side means no native leg
    delta = balance_delta(tx, idx)
    if delta is None or abs(delta) <= settings.DUST_THRESHOLD_LAMPORTS:
        return None

    amount = Decimal(delta) / LAMPORTS_PER_SOL
    parties = resolve_native_counterparty(tx, tracked)
    return _build_event(tracked, tx.signature, SOL.symbol, amount, parties, time)


def _token_event(
    tracked: str,
    tx: RawLedgerTransaction,
    post: TokenBalance,
    pre: Optional[TokenBalance],
    time: Optional[datetime],
) -> Optional[FormattedEvent]:
    before = pre.ui_amount if pre is not None else Decimal("0")
    delta = post.ui_amount - before
    if delta == 0:
        return None

    parties = resolve_token_counterparty(tx, tracked)
    return _build_event(tracked, tx.signature, symbol_for_mint(post.mint), delta, parties, time)


def _build_event(
    tracked: str,
    signature: str,
    asset: str,
    delta: Decimal,
    parties: Optional[Counterparty],
    time: Optional[datetime],
) -> Optional[FormattedEvent]:
    received = delta > 0
    if parties is None:
        parties = Counterparty(
            from_address=EXTERNAL if received else tracked,
            to_address=tracked if received else EXTERNAL,
        )

    if parties.from_address == parties.to_address:
        logger.debug("self_transfer_dropped", signature=signature, asset=asset)
        return None

    return FormattedEvent(
        signature=signature,
        type=EventType.RECEIVED if received else EventType.SENT,
        asset=asset,
        amount=abs(delta),
        from_address=parties.from_address,
        to_address=parties.to_address,
        time=time,
    )
