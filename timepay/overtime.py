from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from .hours import break_minutes_for, resolve_hours
from .models import ZERO, TimeEntry, to_decimal


@dataclass
class WeeklyThresholdRule:
    threshold: Decimal = Decimal("40")

    def regular_budget(self, hours_before: Decimal) -> Decimal:
        return max(self.threshold - hours_before, ZERO)

    def split(self, hours: Decimal, hours_before: Decimal) -> tuple[Decimal, Decimal]:
        regular = min(hours, self.regular_budget(hours_before))
        return regular, hours - regular


@dataclass
class EntryAllocation:
    entry: TimeEntry
    hours: Decimal
    break_minutes: int
    regular_hours: Decimal
    overtime_hours: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal

    @property
    def pay(self) -> Decimal:
        return self.regular_pay + self.overtime_pay


@dataclass
class WeekAllocation:
    previous_period_hours: Decimal = ZERO
    entries: List[EntryAllocation] = field(default_factory=list)

    @property
    def total_hours(self) -> Decimal:
        return sum((a.hours for a in self.entries), ZERO)

    @property
    def full_week_hours(self) -> Decimal:
        return self.previous_period_hours + self.total_hours

    @property
    def regular_hours(self) -> Decimal:
        return sum((a.regular_hours for a in self.entries), ZERO)

    @property
    def overtime_hours(self) -> Decimal:
        return sum((a.overtime_hours for a in self.entries), ZERO)

    @property
    def regular_pay(self) -> Decimal:
        return sum((a.regular_pay for a in self.entries), ZERO)

    @property
    def overtime_pay(self) -> Decimal:
        return sum((a.overtime_pay for a in self.entries), ZERO)


def allocate_hours(
    hours: Iterable[Decimal],
    previous_period_hours: Decimal = ZERO,
    rule: Optional[WeeklyThresholdRule] = None,
) -> List[tuple[Decimal, Decimal]]:
    """Split chronologically ordered hours into (regular, overtime) pairs.

    Overtime lands on the latest hours of the week: each block only gets
    whatever regular budget the carry-over and earlier blocks left behind.
    """
    rule = rule or WeeklyThresholdRule()
    cumulative = to_decimal(previous_period_hours)
    splits: List[tuple[Decimal, Decimal]] = []
    for block in hours:
        splits.append(rule.split(block, cumulative))
        cumulative += block
    return splits


def allocate_week(
    entries: Iterable[TimeEntry],
    previous_period_hours: Decimal,
    hourly_rate: Decimal,
    overtime_multiplier: Decimal,
    as_of: Optional[datetime] = None,
    rule: Optional[WeeklyThresholdRule] = None,
) -> WeekAllocation:
    ordered = sorted(entries, key=lambda e: e.clock_in)
    rate = to_decimal(hourly_rate)
    overtime_rate = rate * to_decimal(overtime_multiplier)
    hours = [resolve_hours(entry, as_of) for entry in ordered]

    result = WeekAllocation(previous_period_hours=to_decimal(previous_period_hours))
    for entry, worked, (regular, overtime) in zip(ordered, hours, allocate_hours(hours, previous_period_hours, rule)):
        result.entries.append(
            EntryAllocation(
                entry=entry,
                hours=worked,
                break_minutes=break_minutes_for(entry),
                regular_hours=regular,
                overtime_hours=overtime,
                regular_pay=regular * rate,
                overtime_pay=overtime * overtime_rate,
            )
        )
    return result
