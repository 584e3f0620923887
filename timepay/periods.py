from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional, Tuple

from .errors import ValidationError
from .models import PayPeriod, PayPeriodType, UserPaySettings

ONE_MICROSECOND = timedelta(microseconds=1)


def start_of_day(day: date, zone: Optional[tzinfo]) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)


def end_of_day(day: date, zone: Optional[tzinfo]) -> datetime:
    return datetime.combine(day, time.max, tzinfo=zone)


def week_bounds(anchor: date) -> Tuple[date, date]:
    """Sunday and Saturday of the week containing ``anchor``."""
    start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _anchor_date(year: int, month: int, end_day: int) -> date:
    # End day 31 in a 30-day month lands on the 30th, never on the 1st of the next.
    return date(year, month, min(end_day, monthrange(year, month)[1]))


def _monthly_bounds(today: date, end_day: int) -> Tuple[date, date]:
    this_end = _anchor_date(today.year, today.month, end_day)
    if today > this_end:
        next_year, next_month = _shift_month(today.year, today.month, 1)
        return this_end + timedelta(days=1), _anchor_date(next_year, next_month, end_day)
    prev_year, prev_month = _shift_month(today.year, today.month, -1)
    return _anchor_date(prev_year, prev_month, end_day) + timedelta(days=1), this_end


def current_period(settings: UserPaySettings, now: datetime) -> PayPeriod:
    local = settings.localize(now)
    today = local.date()
    if settings.pay_period_type == PayPeriodType.WEEKLY:
        first, last = week_bounds(today)
    else:
        first, last = _monthly_bounds(today, settings.pay_period_end_day)
    return PayPeriod(start=start_of_day(first, local.tzinfo), end=end_of_day(last, local.tzinfo))


period_for = current_period


def next_period(period: PayPeriod, settings: UserPaySettings) -> PayPeriod:
    return current_period(settings, period.end + ONE_MICROSECOND)


def previous_period(period: PayPeriod, settings: UserPaySettings) -> PayPeriod:
    return current_period(settings, period.start - ONE_MICROSECOND)


def enumerate_periods(settings: UserPaySettings, now: datetime, count: int) -> List[PayPeriod]:
    """The ``count`` most recent periods ending at the current one, newest first."""
    if count < 0:
        raise ValidationError("Period count must be non-negative")
    periods: List[PayPeriod] = []
    if count == 0:
        return periods
    period = current_period(settings, now)
    periods.append(period)
    while len(periods) < count:
        period = previous_period(period, settings)
        periods.append(period)
    return periods


def periods_since(
    settings: UserPaySettings,
    now: datetime,
    earliest: Optional[datetime],
    limit: Optional[int] = None,
) -> List[PayPeriod]:
    """Periods from the current one back to the one containing ``earliest``, newest first."""
    period = current_period(settings, now)
    periods = [period]
    if earliest is None:
        return periods
    while period.start > earliest and (limit is None or len(periods) < limit):
        period = previous_period(period, settings)
        periods.append(period)
    return periods


def days_remaining(period: PayPeriod, now: datetime) -> int:
    today = now.astimezone(period.end.tzinfo).date() if now.tzinfo and period.end.tzinfo else now.date()
    return max((period.end.date() - today).days + 1, 0)
