import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from timepay.clock import TimeClock
from timepay.errors import AlreadyClockedIn, NotFound
from timepay.models import Break, FilingStatus, PayPeriodType, TimeEntry, UserPaySettings
from timepay.storage import DataStore


def at(day: int, hour: int) -> datetime:
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


def build_entry(entry_id: str = "e1", clock_out=None, **kwargs) -> TimeEntry:
    return TimeEntry(id=entry_id, user_id="u1", clock_in=at(4, 9), clock_out=clock_out, **kwargs)


def test_json_store_round_trips_entries_breaks_and_settings(tmp_path):
    data_path = tmp_path / "store.json"
    store = DataStore(data_path)
    entry = build_entry(
        clock_out=at(4, 17),
        notes="close",
        breaks=[Break(id="b1", entry_id="e1", break_type="meal", start=at(4, 12), duration_minutes=30)],
        total_break_minutes=30,
    )
    store.add_entry(entry)
    store.save_settings(
        "u1",
        UserPaySettings(hourly_rate="22.50", pay_period_type="weekly", state="ny", filing_status="married"),
    )

    reloaded = DataStore(data_path)

    loaded = reloaded.get_entry("e1")
    assert loaded.clock_in == at(4, 9)
    assert loaded.clock_out == at(4, 17)
    assert loaded.breaks[0].duration_minutes == 30
    assert loaded.breaks[0].start == at(4, 12)
    settings = reloaded.settings_for("u1")
    assert settings.hourly_rate == Decimal("22.50")
    assert settings.pay_period_type == PayPeriodType.WEEKLY
    assert settings.state == "NY"
    assert settings.filing_status == FilingStatus.MARRIED


def test_returned_entries_are_copies():
    store = DataStore()
    store.add_entry(build_entry())

    copy = store.get_entry("e1")
    copy.notes = "changed"

    assert store.get_entry("e1").notes is None


def test_second_open_entry_is_rejected():
    store = DataStore()
    store.add_entry(build_entry("e1"))

    with pytest.raises(AlreadyClockedIn):
        store.add_entry(build_entry("e2"))

    store.add_entry(build_entry("e3", clock_out=at(4, 10)))
    assert store.find_open_entry("u1").id == "e1"


def test_missing_entries_and_breaks_raise_not_found():
    store = DataStore()

    with pytest.raises(NotFound):
        store.get_entry("missing")
    with pytest.raises(NotFound):
        store.delete_entry("missing")
    with pytest.raises(NotFound):
        store.save_entry(build_entry("missing"))
    with pytest.raises(NotFound):
        store.find_entry_by_break("missing")


def test_settings_default_when_unset():
    assert DataStore().settings_for("nobody") == UserPaySettings()


def test_earliest_clock_in():
    store = DataStore()
    assert store.earliest_clock_in("u1") is None

    store.add_entry(TimeEntry(id="late", user_id="u1", clock_in=at(8, 9), clock_out=at(8, 10)))
    store.add_entry(TimeEntry(id="early", user_id="u1", clock_in=at(2, 9), clock_out=at(2, 10)))

    assert store.earliest_clock_in("u1") == at(2, 9)


def test_stores_sharing_a_file_keep_one_open_entry(tmp_path):
    data_path = tmp_path / "store.json"
    first = DataStore(data_path)
    second = DataStore(data_path)
    settings = UserPaySettings()

    entry = TimeClock(first, clock=lambda: at(4, 9)).clock_in("u1", settings)

    with pytest.raises(AlreadyClockedIn):
        TimeClock(second, clock=lambda: at(4, 9)).clock_in("u1", settings)
    assert DataStore(data_path).find_open_entry("u1").id == entry.id


def test_stores_sharing_a_file_do_not_drop_each_others_writes(tmp_path):
    data_path = tmp_path / "store.json"
    first = DataStore(data_path)
    second = DataStore(data_path)

    first.add_entry(TimeEntry(id="a", user_id="u1", clock_in=at(4, 9), clock_out=at(4, 10)))
    second.add_entry(TimeEntry(id="b", user_id="u1", clock_in=at(5, 9), clock_out=at(5, 10)))
    first.save_settings("u1", UserPaySettings(hourly_rate="30"))

    reloaded = DataStore(data_path)
    assert [e.id for e in reloaded.entries_between("u1", at(1, 0), at(9, 0))] == ["a", "b"]
    assert reloaded.settings_for("u1").hourly_rate == Decimal("30")
    assert not [p for p in tmp_path.iterdir() if p.name.endswith(".tmp")]


def test_concurrent_clock_ins_through_separate_stores(tmp_path):
    data_path = tmp_path / "store.json"
    stores = [DataStore(data_path) for _ in range(6)]
    barrier = threading.Barrier(len(stores))
    outcomes = []

    def clock_in(store):
        barrier.wait()
        try:
            TimeClock(store, clock=lambda: at(4, 9)).clock_in("u1", UserPaySettings())
            outcomes.append("ok")
        except AlreadyClockedIn:
            outcomes.append("conflict")

    threads = [threading.Thread(target=clock_in, args=(store,)) for store in stores]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == 5
    assert DataStore(data_path).find_open_entry("u1") is not None


def test_json_store_round_trips_weekly_schedule(tmp_path):
    data_path = tmp_path / "store.json"
    DataStore(data_path).save_settings("u1", UserPaySettings(weekly_schedule={"monday": "8", "saturday": "4.25"}))

    schedule = DataStore(data_path).settings_for("u1").weekly_schedule

    assert schedule.monday == Decimal("8")
    assert schedule.saturday == Decimal("4.25")
    assert schedule.total_hours == Decimal("12.25")
