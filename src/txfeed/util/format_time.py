from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def time_ago(t: Optional[datetime], now: Optional[datetime] = None) -> str:
    if t is None:
        return ""
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    diff = int((now - t).total_seconds())

    if diff < 5:
        return "just now"
    if diff < 60:
        return f"{diff} seconds ago"
    if diff < 3600:
        return f"{diff // 60} minutes ago"
    if diff < 86400:
        return f"{diff // 3600} hours ago"
    if diff < 2592000:
        return f"{diff // 86400} days ago"
    if diff < 31536000:
        return f"{diff // 2592000} months ago"
    return f"{diff // 31536000} years ago"


def format_value(value: Any, decimals: int) -> str:
    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return "0.00"
    if not num.is_finite():
        return "0.00"
    return f"{num:.{decimals}f}"


def short_address(addr: str) -> str:
    if not addr or len(addr) <= 12:
        return addr or ""
    return f"{addr[:4]}...{addr[-4:]}"
