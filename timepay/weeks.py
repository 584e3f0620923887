from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from .hours import resolve_hours
from .models import ZERO, PayPeriod, TimeEntry
from .periods import ONE_MICROSECOND, end_of_day, start_of_day, week_bounds


@dataclass(frozen=True)
class WeekSpan:
    number: int
    start: datetime
    end: datetime
    calendar_start: datetime
    calendar_end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def is_partial(self) -> bool:
        return self.start != self.calendar_start or self.end != self.calendar_end


@dataclass
class Week:
    span: WeekSpan
    entries: List[TimeEntry] = field(default_factory=list)
    previous_period_hours: Decimal = ZERO

    @property
    def number(self) -> int:
        return self.span.number


def week_start(moment: datetime) -> datetime:
    sunday, _ = week_bounds(moment.date())
    return start_of_day(sunday, moment.tzinfo)


def week_end(moment: datetime) -> datetime:
    _, saturday = week_bounds(moment.date())
    return end_of_day(saturday, moment.tzinfo)


def weeks_in_period(period: PayPeriod) -> List[WeekSpan]:
    """Split a period into Sunday-Saturday spans clipped to the period boundaries."""
    spans: List[WeekSpan] = []
    calendar_start = week_start(period.start)
    number = 1
    while calendar_start <= period.end:
        calendar_end = week_end(calendar_start)
        spans.append(
            WeekSpan(
                number=number,
                start=max(calendar_start, period.start),
                end=min(calendar_end, period.end),
                calendar_start=calendar_start,
                calendar_end=calendar_end,
            )
        )
        calendar_start = week_start(calendar_end + ONE_MICROSECOND)
        number += 1
    return spans


def carry_over_window(period: PayPeriod) -> Tuple[datetime, datetime]:
    """Range holding entries that share the period's first calendar week but precede it."""
    return week_start(period.start), period.start


def partition_entries(
    period: PayPeriod,
    entries: Iterable[TimeEntry],
    as_of: Optional[datetime] = None,
) -> List[Week]:
    """Group entries into the period's weeks and total the carry-over hours per week.

    ``entries`` should cover at least ``carry_over_window(period)`` through
    ``period.end``; anything outside that range is ignored.
    """
    ordered = sorted(entries, key=lambda e: e.clock_in)
    weeks: List[Week] = []
    for span in weeks_in_period(period):
        in_week = [e for e in ordered if span.contains(e.clock_in)]
        carried = [e for e in ordered if span.calendar_start <= e.clock_in < period.start]
        previous_hours = sum((resolve_hours(e, as_of) for e in carried), ZERO)
        weeks.append(Week(span=span, entries=in_week, previous_period_hours=previous_hours))
    return weeks
