from datetime import datetime, timezone
from decimal import Decimal

import pytest

from timepay.clock import TimeClock
from timepay.errors import AlreadyClockedIn, InvalidRange, NotFound, ValidationError
from timepay.hours import resolve_hours
from timepay.models import BreakType, UserPaySettings
from timepay.periods import current_period
from timepay.storage import DataStore
from timepay.time_tracking import (
    add_break,
    create_time_entry,
    delete_break,
    delete_time_entries,
    delete_time_entry,
    export_window,
    get_time_entry,
    list_time_entries,
    timesheet_for,
    update_break,
    update_time_entry,
)

NOW = datetime(2024, 3, 20, 12, tzinfo=timezone.utc)


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 3, day, hour, minute, tzinfo=timezone.utc)


def build_store():
    return DataStore(), UserPaySettings(hourly_rate="20", pay_period_type="weekly")


def add(store, settings, day: int, start: int, end: int, user_id: str = "u1"):
    return create_time_entry(store, user_id, settings, at(day, start), at(day, end), now=NOW)


def test_manual_entry_rounds_both_ends():
    store, settings = build_store()

    entry = create_time_entry(store, "u1", settings, at(4, 8, 58), at(4, 17, 2), notes="inventory", now=NOW)

    assert entry.clock_in == at(4, 9)
    assert entry.clock_out == at(4, 17, 5)
    assert entry.is_manual
    assert get_time_entry(store, "u1", entry.id).notes == "inventory"


def test_manual_entry_must_end_after_it_starts():
    store, settings = build_store()

    with pytest.raises(InvalidRange):
        create_time_entry(store, "u1", settings, at(4, 17), at(4, 9), now=NOW)


def test_overlapping_manual_entry_is_rejected():
    store, settings = build_store()
    add(store, settings, 4, 9, 17)

    with pytest.raises(ValidationError, match="overlaps"):
        add(store, settings, 4, 16, 18)


def test_adjacent_entries_do_not_overlap():
    store, settings = build_store()
    add(store, settings, 4, 9, 17)

    entry = add(store, settings, 4, 17, 18)

    assert entry.clock_in == at(4, 17)


def test_past_entry_does_not_collide_with_open_entry():
    store, settings = build_store()
    TimeClock(store, clock=lambda: NOW).clock_in("u1", settings)

    entry = add(store, settings, 19, 9, 17)

    assert entry.clock_out == at(19, 17)


def test_open_manual_entry_respects_single_open_entry():
    store, settings = build_store()
    TimeClock(store, clock=lambda: at(20, 8)).clock_in("u1", settings)

    with pytest.raises(AlreadyClockedIn):
        create_time_entry(store, "u1", settings, at(19, 9), now=NOW)


def test_entries_of_other_users_are_not_found():
    store, settings = build_store()
    entry = add(store, settings, 4, 9, 17)

    with pytest.raises(NotFound):
        get_time_entry(store, "u2", entry.id)
    with pytest.raises(NotFound):
        delete_time_entry(store, "u2", entry.id)


def test_update_applies_times_without_rounding():
    store, settings = build_store()
    entry = add(store, settings, 4, 9, 17)

    updated = update_time_entry(store, "u1", entry.id, clock_out=at(4, 16, 58), notes="left early")

    assert updated.clock_out == at(4, 16, 58)
    assert store.get_entry(entry.id).notes == "left early"


def test_update_rejects_inverted_range_and_keeps_entry():
    store, settings = build_store()
    entry = add(store, settings, 4, 9, 17)

    with pytest.raises(InvalidRange):
        update_time_entry(store, "u1", entry.id, clock_out=at(4, 8))

    assert store.get_entry(entry.id).clock_out == at(4, 17)


def test_reopening_entry_while_another_is_open_is_rejected():
    store, settings = build_store()
    entry = add(store, settings, 4, 9, 17)
    TimeClock(store, clock=lambda: NOW).clock_in("u1", settings)

    with pytest.raises(AlreadyClockedIn):
        update_time_entry(store, "u1", entry.id, clock_out=None)


def test_breaks_keep_entry_total_in_sync():
    store, settings = build_store()
    entry = add(store, settings, 4, 9, 17)

    lunch = add_break(store, "u1", entry.id, "lunch", at(4, 12), at(4, 12, 30))
    rest = add_break(store, "u1", entry.id, BreakType.REST, at(4, 15), duration_minutes=10)

    stored = store.get_entry(entry.id)
    assert lunch.break_type == BreakType.MEAL
    assert lunch.duration_minutes == 30
    assert stored.total_break_minutes == 40
    assert resolve_hours(stored) == Decimal("8") - Decimal("40") / 60

    update_break(store, "u1", lunch.id, end=at(4, 12, 45))
    assert store.get_entry(entry.id).total_break_minutes == 55

    delete_break(store, "u1", rest.id)
    stored = store.get_entry(entry.id)
    assert [b.id for b in stored.breaks] == [lunch.id]
    assert stored.total_break_minutes == 45


def test_break_duration_must_match_its_times():
    store, settings = build_store()
    entry = add(store, settings, 4, 9, 17)

    with pytest.raises(ValidationError):
        add_break(store, "u1", entry.id, "meal", at(4, 12), at(4, 12, 30), duration_minutes=20)


def test_break_of_other_user_is_not_found():
    store, settings = build_store()
    entry = add(store, settings, 4, 9, 17)
    item = add_break(store, "u1", entry.id, "meal", at(4, 12), at(4, 12, 30))

    with pytest.raises(NotFound):
        delete_break(store, "u2", item.id)
    with pytest.raises(NotFound):
        update_break(store, "u1", "missing", notes="x")


def test_list_and_bulk_delete_by_range():
    store, settings = build_store()
    for day in (4, 5, 6, 11):
        add(store, settings, day, 9, 17)
    add(store, settings, 5, 9, 17, user_id="u2")

    assert len(list_time_entries(store, "u1")) == 4
    assert [e.clock_in.day for e in list_time_entries(store, "u1", at(5, 0), at(6, 23))] == [5, 6]

    deleted = delete_time_entries(store, "u1", at(4, 0), at(6, 23))

    assert deleted == 3
    assert len(list_time_entries(store, "u1")) == 1
    assert len(list_time_entries(store, "u2")) == 1


def test_bulk_delete_rejects_inverted_range():
    store, _ = build_store()

    with pytest.raises(ValidationError):
        delete_time_entries(store, "u1", at(6, 0), at(4, 0))


def test_timesheet_for_loads_carry_over_week():
    store = DataStore()
    settings = UserPaySettings(hourly_rate="20", pay_period_type="monthly", pay_period_end_day=10)
    add(store, settings, 10, 6, 16)
    for day in range(11, 16):
        add(store, settings, day, 9, 17)
    period = current_period(settings, at(15, 12))

    timesheet = timesheet_for(store, "u1", settings, period, as_of=NOW)

    assert timesheet.weeks[0].previous_period_hours == Decimal("10")
    assert timesheet.totals.regular_hours == Decimal("30.00")
    assert timesheet.totals.overtime_hours == Decimal("10.00")


def test_export_window_ends_at_the_close_of_the_local_day():
    settings = UserPaySettings(time_zone="America/New_York")

    start, end = export_window(settings, at(4, 5), at(6, 3))

    assert start == at(4, 5)
    assert start.tzinfo == settings.zone
    assert (end.year, end.month, end.day) == (2024, 3, 5)
    assert (end.hour, end.minute, end.second, end.microsecond) == (23, 59, 59, 999999)
    assert export_window(settings) == (None, None)
