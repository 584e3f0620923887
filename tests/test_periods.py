from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from timepay.errors import ValidationError
from timepay.models import PayPeriod, UserPaySettings
from timepay.periods import (
    current_period,
    days_remaining,
    enumerate_periods,
    next_period,
    periods_since,
    previous_period,
)


def at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def bounds(period: PayPeriod) -> tuple[date, date]:
    return period.start.date(), period.end.date()


def monthly(end_day: int = 10, **kwargs) -> UserPaySettings:
    return UserPaySettings(pay_period_type="monthly", pay_period_end_day=end_day, **kwargs)


def weekly(**kwargs) -> UserPaySettings:
    return UserPaySettings(pay_period_type="weekly", **kwargs)


def test_weekly_period_runs_sunday_to_saturday():
    period = current_period(weekly(), at(2024, 3, 6))

    assert bounds(period) == (date(2024, 3, 3), date(2024, 3, 9))
    assert period.start.hour == 0 and period.start.minute == 0
    assert (period.end.hour, period.end.minute, period.end.second, period.end.microsecond) == (23, 59, 59, 999999)


def test_weekly_period_on_sunday_starts_that_day():
    assert bounds(current_period(weekly(), at(2024, 3, 3, 0))) == (date(2024, 3, 3), date(2024, 3, 9))


def test_monthly_period_after_end_day_runs_into_next_month():
    assert bounds(current_period(monthly(10), at(2024, 3, 15))) == (date(2024, 3, 11), date(2024, 4, 10))


def test_monthly_period_on_end_day_closes_that_day():
    assert bounds(current_period(monthly(10), at(2024, 3, 10))) == (date(2024, 2, 11), date(2024, 3, 10))


def test_monthly_period_rolls_over_year_end():
    assert bounds(current_period(monthly(10), at(2024, 12, 20))) == (date(2024, 12, 11), date(2025, 1, 10))
    assert bounds(current_period(monthly(10), at(2025, 1, 5))) == (date(2024, 12, 11), date(2025, 1, 10))


def test_end_day_31_clamps_to_short_months():
    assert bounds(current_period(monthly(31), at(2024, 2, 15))) == (date(2024, 2, 1), date(2024, 2, 29))
    assert bounds(current_period(monthly(31), at(2023, 2, 15))) == (date(2023, 2, 1), date(2023, 2, 28))
    assert bounds(current_period(monthly(31), at(2024, 4, 30))) == (date(2024, 4, 1), date(2024, 4, 30))


def test_end_day_30_in_31_day_month():
    assert bounds(current_period(monthly(30), at(2024, 3, 31))) == (date(2024, 3, 31), date(2024, 4, 30))


def test_period_boundaries_use_the_users_time_zone():
    settings = weekly(time_zone="America/Los_Angeles")

    # Sunday 03:00 UTC is still Saturday evening on the west coast.
    period = current_period(settings, at(2024, 3, 10, 3))

    assert bounds(period) == (date(2024, 3, 3), date(2024, 3, 9))
    assert period.start.tzinfo == ZoneInfo("America/Los_Angeles")


def test_next_and_previous_period_step_one_cycle():
    settings = monthly(10)
    period = current_period(settings, at(2024, 3, 15))

    assert bounds(next_period(period, settings)) == (date(2024, 4, 11), date(2024, 5, 10))
    assert bounds(previous_period(period, settings)) == (date(2024, 2, 11), date(2024, 3, 10))
    assert previous_period(next_period(period, settings), settings) == period


def test_periods_are_contiguous_and_disjoint():
    settings = monthly(31)
    periods = enumerate_periods(settings, at(2024, 6, 15), 8)

    for newer, older in zip(periods, periods[1:]):
        assert older.end < newer.start
        assert (newer.start - older.end).total_seconds() < 0.001


def test_enumerate_periods_newest_first():
    periods = enumerate_periods(weekly(), at(2024, 3, 6), 3)

    assert [p.start.date() for p in periods] == [date(2024, 3, 3), date(2024, 2, 25), date(2024, 2, 18)]
    assert enumerate_periods(weekly(), at(2024, 3, 6), 0) == []


def test_enumerate_periods_rejects_negative_count():
    with pytest.raises(ValidationError):
        enumerate_periods(weekly(), at(2024, 3, 6), -1)


def test_periods_since_reaches_back_to_earliest_entry():
    periods = periods_since(weekly(), at(2024, 3, 6), at(2024, 2, 20))

    assert [p.start.date() for p in periods] == [date(2024, 3, 3), date(2024, 2, 25), date(2024, 2, 18)]
    assert len(periods_since(weekly(), at(2024, 3, 6), None)) == 1


def test_days_remaining_counts_today_and_stops_at_zero():
    period = current_period(weekly(), at(2024, 3, 6))

    assert days_remaining(period, at(2024, 3, 6)) == 4
    assert days_remaining(period, at(2024, 3, 9)) == 1
    assert days_remaining(period, at(2024, 3, 12)) == 0


def test_contains_includes_both_ends():
    period = current_period(weekly(), at(2024, 3, 6))

    assert period.contains(period.start)
    assert period.contains(period.end)
    assert not period.contains(at(2024, 3, 10, 0))


def test_monthly_period_before_end_day_starts_in_previous_month():
    period = current_period(monthly(10), at(2024, 3, 5))

    assert bounds(period) == (date(2024, 2, 11), date(2024, 3, 10))
    assert period.contains(at(2024, 3, 5))


@pytest.mark.parametrize(
    "settings",
    [weekly(), monthly(10), monthly(31), monthly(1, time_zone="America/Los_Angeles")],
)
def test_enumerated_periods_are_their_own_current_period(settings):
    now = at(2024, 3, 5)
    periods = enumerate_periods(settings, now, 14)

    assert periods[0] == current_period(settings, now)
    assert current_period(settings, periods[0].start) == periods[0]
    for period in periods:
        assert current_period(settings, period.start) == period
        assert current_period(settings, period.end) == period
