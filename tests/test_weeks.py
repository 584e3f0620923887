from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from timepay.models import TimeEntry, UserPaySettings
from timepay.periods import current_period
from timepay.weeks import carry_over_window, partition_entries, week_end, week_start, weeks_in_period


def at(month: int, day: int, hour: int = 9) -> datetime:
    return datetime(2024, month, day, hour, tzinfo=timezone.utc)


def build_entry(entry_id: str, clock_in: datetime, hours: int = 8) -> TimeEntry:
    return TimeEntry(id=entry_id, user_id="u1", clock_in=clock_in, clock_out=clock_in + timedelta(hours=hours))


def monthly_period():
    return current_period(UserPaySettings(pay_period_type="monthly", pay_period_end_day=10), at(3, 15))


def test_week_start_and_end_are_sunday_and_saturday():
    assert week_start(at(3, 13)).date() == date(2024, 3, 10)
    assert week_end(at(3, 13)).date() == date(2024, 3, 16)


def test_weeks_are_clipped_to_the_period():
    spans = weeks_in_period(monthly_period())

    assert [s.number for s in spans] == [1, 2, 3, 4, 5]
    assert [(s.start.date(), s.end.date()) for s in spans] == [
        (date(2024, 3, 11), date(2024, 3, 16)),
        (date(2024, 3, 17), date(2024, 3, 23)),
        (date(2024, 3, 24), date(2024, 3, 30)),
        (date(2024, 3, 31), date(2024, 4, 6)),
        (date(2024, 4, 7), date(2024, 4, 10)),
    ]
    assert spans[0].is_partial and spans[-1].is_partial
    assert not spans[1].is_partial
    assert spans[0].calendar_start.date() == date(2024, 3, 10)


def test_carry_over_window_covers_start_of_first_week():
    period = monthly_period()

    start, end = carry_over_window(period)

    assert start.date() == date(2024, 3, 10)
    assert end == period.start


def test_partition_assigns_entries_and_carry_over_hours():
    period = monthly_period()
    before_period = build_entry("sun", at(3, 10), hours=10)
    monday = build_entry("mon", at(3, 11))
    later = build_entry("later", at(3, 19))
    earlier_week = build_entry("old", at(3, 5))

    weeks = partition_entries(period, [later, monday, before_period, earlier_week])

    assert [e.id for e in weeks[0].entries] == ["mon"]
    assert weeks[0].previous_period_hours == Decimal("10")
    assert [e.id for e in weeks[1].entries] == ["later"]
    assert weeks[1].previous_period_hours == Decimal("0")
    assert all(e.id not in ("sun", "old") for w in weeks for e in w.entries)


def test_entry_belongs_to_week_of_its_clock_in():
    period = monthly_period()
    overnight = TimeEntry(id="night", user_id="u1", clock_in=at(3, 16, 22), clock_out=at(3, 17, 6))

    weeks = partition_entries(period, [overnight])

    assert [e.id for e in weeks[0].entries] == ["night"]
    assert weeks[1].entries == []
