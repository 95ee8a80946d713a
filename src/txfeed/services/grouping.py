from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, List, Optional, Sequence

from txfeed.core.models import FormattedEvent, TransactionSection

TODAY = "Today"
YESTERDAY = "Yesterday"

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def long_date(d: date) -> str:
    # en-US long form, independent of the process locale
    return f"{_MONTHS[d.month - 1]} {d.day}, {d.year}"


def _local_day(t: datetime, tz: Optional[tzinfo]) -> date:
    if t.tzinfo is None:
        return t.date()
    return t.astimezone(tz).date()


def section_title(t: datetime, now: datetime, tz: Optional[tzinfo] = None) -> str:
    day = _local_day(t, tz)
    today = _local_day(now, tz)
    yesterday = today - timedelta(days=1)

    # calendar (year, month, day) equality, not elapsed hours
    if day == today:
        return TODAY
    if day == yesterday:
        return YESTERDAY
    return long_date(day)


def group_by_date(
    events: Sequence[FormattedEvent],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> List[TransactionSection]:
    """
    Partition events into day sections.

    Sections come out in the order their title is first seen, and events keep
    their input order inside a section; input is expected newest first. An
    event without a time is bucketed as if it happened `now`. `tz` picks the
    display timezone (the machine's local zone when None).
    """
    if not events:
        return []

    now = now or datetime.now(tz).astimezone(tz)

    sections: Dict[str, TransactionSection] = {}
    for ev in events:
        title = section_title(ev.time or now, now, tz)
        section = sections.get(title)
        if section is None:
            section = sections[title] = TransactionSection(title=title)
        section.events.append(ev)

    return list(sections.values())
