"""
Decoding of jsonParsed RPC payloads into raw ledger DTOs.

Every function here is total: missing or mistyped fields decode to None or
an empty tuple, never to an exception.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from txfeed.config import settings
from txfeed.core.dto import (
    InnerInstructionGroup,
    Instruction,
    RawLedgerTransaction,
    SignatureInfo,
    SystemTransfer,
    TokenAccountBalance,
    TokenBalance,
    TokenTransfer,
    TokenTransferChecked,
    UiTokenAmount,
    UnknownInstruction,
)


def _dec(val: Any) -> Optional[Decimal]:
    if val is None:
        return None
    try:
        return Decimal(str(val))
    except (InvalidOperation, ValueError):
        return None


def _int(val: Any, default: int = 0) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def _str(val: Any) -> Optional[str]:
    return val if isinstance(val, str) and val else None


def _dict(val: Any) -> Dict[str, Any]:
    return val if isinstance(val, dict) else {}


def _list(val: Any) -> List[Any]:
    return val if isinstance(val, list) else []


# ---------- instructions ----------

def parse_instruction(raw: Any) -> Instruction:
    ix = _dict(raw)
    program = _str(ix.get("program"))
    program_id = _str(ix.get("programId"))
    parsed = ix.get("parsed")
    if not isinstance(parsed, dict):
        return UnknownInstruction(program=program, program_id=program_id)

    ix_type = _str(parsed.get("type"))
    info = _dict(parsed.get("info"))

    if program == settings.SYSTEM_PROGRAM and ix_type == "transfer":
        return SystemTransfer(
            program=program,
            source=_str(info.get("source")),
            destination=_str(info.get("destination")),
            lamports=_int(info.get("lamports")),
        )

    if ix_type == "transfer" and program == settings.TOKEN_PROGRAM:
        return TokenTransfer(
            program=program,
            source=_str(info.get("source")),
            destination=_str(info.get("destination")),
            authority=_str(info.get("authority")) or _str(info.get("multisigAuthority")),
            amount=_str(info.get("amount")),
        )

    if ix_type == "transferChecked" and program == settings.TOKEN_PROGRAM:
        token_amount = _dict(info.get("tokenAmount"))
        return TokenTransferChecked(
            program=program,
            source=_str(info.get("source")),
            destination=_str(info.get("destination")),
            authority=_str(info.get("authority")) or _str(info.get("multisigAuthority")),
            mint=_str(info.get("mint")),
            amount=_dec(token_amount.get("uiAmountString", token_amount.get("uiAmount"))),
        )

    return UnknownInstruction(program=program, program_id=program_id, type=ix_type)


def _parse_instructions(raw: Any) -> Tuple[Instruction, ...]:
    return tuple(parse_instruction(ix) for ix in _list(raw))


def _parse_inner(raw: Any) -> Tuple[InnerInstructionGroup, ...]:
    groups = []
    for g in _list(raw):
        g = _dict(g)
        groups.append(
            InnerInstructionGroup(
                index=_int(g.get("index"), -1),
                instructions=_parse_instructions(g.get("instructions")),
            )
        )
    return tuple(groups)


# ---------- balances ----------

def parse_ui_token_amount(raw: Any) -> UiTokenAmount:
    ui = _dict(raw)
    dec = ui.get("decimals")
    return UiTokenAmount(
        amount=_str(ui.get("amount")),
        decimals=_int(dec) if dec is not None else None,
        ui_amount=_dec(ui.get("uiAmountString", ui.get("uiAmount"))),
    )


def _parse_token_balances(raw: Any) -> Tuple[TokenBalance, ...]:
    out = []
    for b in _list(raw):
        b = _dict(b)
        if "accountIndex" not in b:
            continue
        out.append(
            TokenBalance(
                account_index=_int(b.get("accountIndex"), -1),
                mint=str(b.get("mint") or ""),
                owner=_str(b.get("owner")),
                ui_token_amount=parse_ui_token_amount(b.get("uiTokenAmount")),
            )
        )
    return tuple(out)


def _account_key(raw: Any) -> str:
    # jsonParsed gives {"pubkey": ...}; plain json gives the string itself
    if isinstance(raw, dict):
        return str(raw.get("pubkey") or "")
    return str(raw or "")


# ---------- public ----------

def parse_signature_info(raw: Any) -> Optional[SignatureInfo]:
    r = _dict(raw)
    sig = _str(r.get("signature"))
    if sig is None:
        return None
    bt = r.get("blockTime")
    slot = r.get("slot")
    return SignatureInfo(
        signature=sig,
        block_time=_int(bt) if bt is not None else None,
        err=r.get("err"),
        slot=_int(slot) if slot is not None else None,
    )


def parse_transaction(raw: Any, signature: Optional[str] = None) -> Optional[RawLedgerTransaction]:
    r = _dict(raw)
    if not r:
        return None

    tx = _dict(r.get("transaction"))
    message = _dict(tx.get("message"))
    signatures = _list(tx.get("signatures"))
    sig = _str(signatures[0]) if signatures else None
    sig = sig or signature or ""

    meta_raw = r.get("meta")
    meta = _dict(meta_raw)
    bt = r.get("blockTime")

    return RawLedgerTransaction(
        signature=sig,
        account_keys=tuple(_account_key(k) for k in _list(message.get("accountKeys"))),
        instructions=_parse_instructions(message.get("instructions")),
        inner_instructions=_parse_inner(meta.get("innerInstructions")),
        pre_balances=tuple(_int(b) for b in _list(meta.get("preBalances"))),
        post_balances=tuple(_int(b) for b in _list(meta.get("postBalances"))),
        pre_token_balances=_parse_token_balances(meta.get("preTokenBalances")),
        post_token_balances=_parse_token_balances(meta.get("postTokenBalances")),
        block_time=_int(bt) if bt is not None else None,
        err=meta.get("err"),
        has_meta=isinstance(meta_raw, dict) and bool(tx),
    )


def parse_token_account(raw: Any) -> Optional[TokenAccountBalance]:
    """One getTokenAccountsByOwner row in jsonParsed encoding."""
    r = _dict(raw)
    pubkey = _str(r.get("pubkey"))
    info = _dict(_dict(_dict(_dict(r.get("account")).get("data")).get("parsed")).get("info"))
    mint = _str(info.get("mint"))
    if pubkey is None or mint is None:
        return None
    ui = parse_ui_token_amount(info.get("tokenAmount"))
    return TokenAccountBalance(
        address=pubkey,
        mint=mint,
        ui_amount=ui.ui_amount or Decimal("0"),
    )
