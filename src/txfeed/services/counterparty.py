"""
Counterparty resolution for one parsed transaction.

Both resolvers are total: any missing key, index or balance degrades to the
"external" address instead of raising.

- Native SOL: a system transfer touching the tracked wallet is authoritative.
  Without one, the counterparty is guessed from balance deltas: the account
  with the largest opposite-sign move above the dust threshold, scanned in
  account-key order, replaced only on a strictly larger move.
- SPL tokens: the first spl-token transfer/transferChecked names token
  accounts; those are mapped back to owning wallets through the token
  balance tables (pre first, then post).
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

from txfeed.config import settings
from txfeed.core.dto import (
    Instruction,
    RawLedgerTransaction,
    SystemTransfer,
    TokenBalance,
    TokenTransfer,
    TokenTransferChecked,
)
from txfeed.core.models import Counterparty

EXTERNAL = settings.EXTERNAL_ADDRESS


def balance_delta(tx: RawLedgerTransaction, index: int) -> Optional[int]:
    if index >= len(tx.pre_balances) or index >= len(tx.post_balances):
        return None
    return tx.post_balances[index] - tx.pre_balances[index]


# -------------------------
# Native
# -------------------------

def find_native_transfer(
    instructions: Iterable[Instruction], tracked: str
) -> Optional[SystemTransfer]:
    for ix in instructions:
        if isinstance(ix, SystemTransfer) and tracked in (ix.source, ix.destination):
            return ix
    return None


def resolve_native_counterparty(
    tx: RawLedgerTransaction,
    tracked: str,
    dust_threshold: int = settings.DUST_THRESHOLD_LAMPORTS,
) -> Optional[Counterparty]:
    transfer = find_native_transfer(tx.all_instructions(), tracked)
    if transfer is not None:
        return Counterparty(
            from_address=transfer.source or EXTERNAL,
            to_address=transfer.destination or EXTERNAL,
        )

    my_index = tx.index_of(tracked)
    if my_index == -1:
        return Counterparty(from_address=EXTERNAL, to_address=EXTERNAL)

    my_delta = balance_delta(tx, my_index) or 0
    counterparty = EXTERNAL
    best = dust_threshold

    if my_delta < 0:
        # sent: whoever gained the most
        for i, key in enumerate(tx.account_keys):
            if i == my_index:
                continue
            delta = balance_delta(tx, i)
            if delta is not None and delta > best:
                best = delta
                counterparty = key
        return Counterparty(from_address=tracked, to_address=counterparty)

    # received: whoever lost the most
    for i, key in enumerate(tx.account_keys):
        if i == my_index:
            continue
        delta = balance_delta(tx, i)
        if delta is not None and delta < 0 and -delta > best:
            best = -delta
            counterparty = key
    return Counterparty(from_address=counterparty, to_address=tracked)


# -------------------------
# SPL tokens
# -------------------------

def find_token_transfer(
    instructions: Iterable[Instruction],
) -> Optional[TokenTransfer | TokenTransferChecked]:
    for ix in instructions:
        if isinstance(ix, (TokenTransfer, TokenTransferChecked)) and ix.program == settings.TOKEN_PROGRAM:
            return ix
    return None


def _owner_index(
    tx: RawLedgerTransaction, balances: Tuple[TokenBalance, ...]
) -> Dict[str, str]:
    owners: Dict[str, str] = {}
    for b in balances:
        address = tx.address_at(b.account_index)
        if address is not None and b.owner and address not in owners:
            owners[address] = b.owner
    return owners


def resolve_token_owner(tx: RawLedgerTransaction, token_account: Optional[str]) -> Optional[str]:
    if not token_account:
        return None
    owner = _owner_index(tx, tx.pre_token_balances).get(token_account)
    if owner:
        return owner
    return _owner_index(tx, tx.post_token_balances).get(token_account)


def resolve_token_counterparty(tx: RawLedgerTransaction, tracked: str) -> Optional[Counterparty]:
    transfer = find_token_transfer(tx.all_instructions())
    if transfer is None:
        return Counterparty(from_address=EXTERNAL, to_address=EXTERNAL)

    source_owner = resolve_token_owner(tx, transfer.source)
    dest_owner = resolve_token_owner(tx, transfer.destination)

    # smart wallets sign as authority over a token account they don't own
    is_sender = source_owner == tracked or transfer.authority == tracked

    if is_sender:
        return Counterparty(
            from_address=tracked,
            to_address=dest_owner or transfer.destination or EXTERNAL,
        )
    return Counterparty(
        from_address=source_owner or transfer.source or EXTERNAL,
        to_address=tracked,
    )
