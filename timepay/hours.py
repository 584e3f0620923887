from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from .models import ZERO, TimeEntry

MICROSECONDS_PER_HOUR = Decimal(3_600_000_000)


def elapsed(start: datetime, end: datetime) -> timedelta:
    # Same-tzinfo subtraction ignores DST shifts, so compare in UTC.
    if start.tzinfo is not None and end.tzinfo is not None:
        return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    return end - start


def break_minutes_for(entry: TimeEntry) -> int:
    """Break minutes from the recorded breaks, else the cached total on the entry."""
    if entry.breaks:
        return sum(item.minutes() for item in entry.breaks)
    return entry.total_break_minutes


def resolve_hours(entry: TimeEntry, as_of: Optional[datetime] = None) -> Decimal:
    """Worked hours for ``entry``.

    Open entries are measured up to ``as_of`` (default: now) without being
    mutated, which is what live elapsed and earnings projections rely on.
    """
    end = entry.clock_out
    if end is None:
        end = as_of if as_of is not None else datetime.now(entry.clock_in.tzinfo)
    span = elapsed(entry.clock_in, end) // timedelta(microseconds=1)
    hours = Decimal(span) / MICROSECONDS_PER_HOUR - Decimal(break_minutes_for(entry)) / 60
    return max(hours, ZERO)
