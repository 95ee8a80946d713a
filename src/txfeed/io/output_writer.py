from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional, Sequence

from txfeed.core.enums import EventType
from txfeed.core.models import Portfolio, PricedEvent, TransactionSection
from txfeed.io.schemas import history_to_dict
from txfeed.util.format_time import format_value, short_address, time_ago


def write_history_json(
    address: str,
    priced: Sequence[PricedEvent],
    sections: Sequence[TransactionSection],
    out_dir: str,
    has_more: bool = False,
    portfolio: Optional[Portfolio] = None,
    filename: str = "history.json",
) -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(history_to_dict(address, priced, sections, has_more, portfolio), f, indent=2)

    return str(out_path)


def write_summary_md(
    address: str,
    priced: Sequence[PricedEvent],
    sections: Sequence[TransactionSection],
    out_dir: str,
    portfolio: Optional[Portfolio] = None,
    filename: str = "summary.md",
    now: Optional[datetime] = None,
) -> str:
    """
    Human-readable activity feed, one block per day section.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename

    priced_by_event: Dict[int, PricedEvent] = {id(pe.event): pe for pe in priced}

    def fmt_usd(x: Optional[Decimal]) -> str:
        return f"${x:.2f}" if x is not None else "n/a"

    total_in = sum(
        (pe.usd_value for pe in priced if pe.usd_value is not None and pe.event.type == EventType.RECEIVED),
        Decimal("0"),
    )
    total_out = sum(
        (pe.usd_value for pe in priced if pe.usd_value is not None and pe.event.type == EventType.SENT),
        Decimal("0"),
    )

    lines = []
    lines.append("# Wallet Activity\n")
    lines.append(f"- Wallet: **{address}**\n")
    lines.append(f"- Events: **{len(priced)}**\n")
    lines.append(f"- Received: **{fmt_usd(total_in)}**\n")
    lines.append(f"- Sent: **{fmt_usd(total_out)}**\n")
    lines.append("\n")

    if portfolio is not None:
        lines.append("## Portfolio\n\n")
        for h in portfolio.holdings:
            lines.append(f"- **{h.symbol}** {format_value(h.amount, 4)} ({fmt_usd(h.usd_value)})\n")
        lines.append(f"- Total: **{fmt_usd(portfolio.total_usd)}**\n\n")

    if not sections:
        lines.append("_No transactions found._\n")
    for s in sections:
        lines.append(f"## {s.title}\n\n")
        for e in s.events:
            pe = priced_by_event.get(id(e))
            usd = fmt_usd(pe.usd_value) if pe is not None else "n/a"
            if e.type == EventType.SENT:
                who = f"to {short_address(e.to_address)}"
                sign = "-"
            else:
                who = f"from {short_address(e.from_address)}"
                sign = "+"
            when = time_ago(e.time, now) if e.time is not None else "pending"
            lines.append(
                f"- {e.type.value.capitalize()} {sign}{format_value(e.amount, 4)} {short_address(e.asset)} "
                f"{who} | {usd} | {when}\n"
            )
        lines.append("\n")

    with out_path.open("w", encoding="utf-8") as f:
        f.writelines(lines)

    return str(out_path)
