from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .core.logging import get_logger
from .hours import resolve_hours
from .models import ZERO, PayCalculation, PayPeriod, TimeEntry, UserPaySettings, to_hours
from .paycheck import PaycheckCalculator
from .periods import current_period
from .storage import EntryStore
from .weeks import carry_over_window

logger = get_logger(__name__)

RECENT_WINDOW = timedelta(days=30)


@dataclass(frozen=True)
class ClockTime:
    hour: int
    minute: int

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass
class DashboardMetrics:
    """Summary of the current pay period and the last thirty days."""

    period: PayPeriod
    total_hours: Decimal = ZERO
    completed_entries: int = 0
    days_worked: int = 0
    average_hours_per_day: Decimal = ZERO
    scheduled_hours: Decimal = ZERO
    pay: PayCalculation = field(default_factory=PayCalculation)
    average_clock_in: Optional[ClockTime] = None
    average_clock_out: Optional[ClockTime] = None
    daily_hours: Dict[date, Decimal] = field(default_factory=dict)
    recent_hours: Decimal = ZERO
    recent_entries: int = 0


def average_clock_time(moments: Iterable[datetime]) -> Optional[ClockTime]:
    """Mean wall-clock time of day, to the nearest minute."""
    minutes = [moment.hour * 60 + moment.minute for moment in moments]
    if not minutes:
        return None
    hour, minute = divmod(round(sum(minutes) / len(minutes)), 60)
    return ClockTime(hour=hour, minute=minute)


def scheduled_hours(settings: UserPaySettings, period: PayPeriod) -> Decimal:
    """Planned hours from the weekly schedule across every day of ``period``."""
    day = period.start.date()
    last = period.end.date()
    total = ZERO
    while day <= last:
        total += settings.weekly_schedule.hours_on(day)
        day += timedelta(days=1)
    return total


def summarize(
    period: PayPeriod,
    entries: Iterable[TimeEntry],
    recent: Iterable[TimeEntry],
    settings: UserPaySettings,
    pay: PayCalculation,
) -> DashboardMetrics:
    """Fold period and recent entries into dashboard figures.

    Only closed entries count toward hours and days worked; open entries
    still contribute their clock-in time to the average clock-in.
    """
    entries = list(entries)
    completed = [entry for entry in entries if not entry.is_open]
    daily: Dict[date, Decimal] = {}
    for entry in completed:
        day = settings.localize(entry.clock_in).date()
        daily[day] = daily.get(day, ZERO) + resolve_hours(entry)
    total = sum(daily.values(), ZERO)
    recent_completed = [entry for entry in recent if not entry.is_open]

    return DashboardMetrics(
        period=period,
        total_hours=to_hours(total),
        completed_entries=len(completed),
        days_worked=len(daily),
        average_hours_per_day=to_hours(total / len(daily)) if daily else ZERO,
        scheduled_hours=to_hours(scheduled_hours(settings, period)),
        pay=pay,
        average_clock_in=average_clock_time(settings.localize(entry.clock_in) for entry in entries),
        average_clock_out=average_clock_time(settings.localize(entry.clock_out) for entry in completed),
        daily_hours={day: to_hours(hours) for day, hours in sorted(daily.items())},
        recent_hours=to_hours(sum((resolve_hours(entry) for entry in recent_completed), ZERO)),
        recent_entries=len(recent_completed),
    )


def metrics_for(
    store: EntryStore,
    user_id: str,
    settings: UserPaySettings,
    now: datetime,
    calculator: Optional[PaycheckCalculator] = None,
) -> DashboardMetrics:
    calculator = calculator or PaycheckCalculator()
    period = current_period(settings, now)
    window_start, _ = carry_over_window(period)
    window = store.entries_between(user_id, window_start, period.end)
    in_period: List[TimeEntry] = [entry for entry in window if period.contains(entry.clock_in)]
    closed = [entry for entry in window if not entry.is_open]
    pay = calculator.timesheet(period, closed, settings, as_of=now).totals
    recent = store.entries_between(user_id, now - RECENT_WINDOW, now)

    metrics = summarize(period, in_period, recent, settings, pay)
    logger.info(
        "metrics_built",
        user_id=user_id,
        period_start=period.start.isoformat(),
        completed_entries=metrics.completed_entries,
        total_hours=str(metrics.total_hours),
    )
    return metrics
