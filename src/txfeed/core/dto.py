from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple, Union


@dataclass(frozen=True)
class SignatureInfo:
    signature: str
    block_time: Optional[int] = None
    err: Optional[Any] = None
    slot: Optional[int] = None


# --- Parsed instructions ---

@dataclass(frozen=True)
class SystemTransfer:
    program: str
    source: Optional[str]
    destination: Optional[str]
    lamports: int = 0


@dataclass(frozen=True)
class TokenTransfer:
    program: str
    source: Optional[str]
    destination: Optional[str]
    authority: Optional[str]
    amount: Optional[str] = None        # raw units, as the node returns it


@dataclass(frozen=True)
class TokenTransferChecked:
    program: str
    source: Optional[str]
    destination: Optional[str]
    authority: Optional[str]
    mint: Optional[str] = None
    amount: Optional[Decimal] = None    # ui amount


@dataclass(frozen=True)
class UnknownInstruction:
    program: Optional[str] = None
    program_id: Optional[str] = None
    type: Optional[str] = None


Instruction = Union[SystemTransfer, TokenTransfer, TokenTransferChecked, UnknownInstruction]


@dataclass(frozen=True)
class InnerInstructionGroup:
    index: int
    instructions: Tuple[Instruction, ...] = ()


# --- Balances ---

@dataclass(frozen=True)
class UiTokenAmount:
    amount: Optional[str]
    decimals: Optional[int]
    ui_amount: Optional[Decimal]


@dataclass(frozen=True)
class TokenBalance:
    account_index: int
    mint: str
    owner: Optional[str]
    ui_token_amount: UiTokenAmount

    @property
    def ui_amount(self) -> Decimal:
        return self.ui_token_amount.ui_amount or Decimal("0")


# --- Transaction ---

@dataclass(frozen=True)
class RawLedgerTransaction:
    """
    One getTransaction result in jsonParsed form, reduced to what the
    classifier reads. `has_meta` is False when the node returned no meta.
    """

    signature: str
    account_keys: Tuple[str, ...] = ()
    instructions: Tuple[Instruction, ...] = ()
    inner_instructions: Tuple[InnerInstructionGroup, ...] = ()
    pre_balances: Tuple[int, ...] = ()
    post_balances: Tuple[int, ...] = ()
    pre_token_balances: Tuple[TokenBalance, ...] = ()
    post_token_balances: Tuple[TokenBalance, ...] = ()
    block_time: Optional[int] = None
    err: Optional[Any] = None
    has_meta: bool = True

    @property
    def failed(self) -> bool:
        return self.err is not None

    def all_instructions(self) -> Tuple[Instruction, ...]:
        out = list(self.instructions)
        for group in self.inner_instructions:
            out.extend(group.instructions)
        return tuple(out)

    def index_of(self, address: str) -> int:
        try:
            return self.account_keys.index(address)
        except ValueError:
            return -1

    def address_at(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.account_keys):
            return self.account_keys[index]
        return None


@dataclass(frozen=True)
class TokenAccountBalance:
    """A token account held by a wallet (getTokenAccountsByOwner row)."""

    address: str
    mint: str
    ui_amount: Decimal
