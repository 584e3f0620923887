from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timepay.db import models  # noqa: F401
from timepay.db.session import Base
from timepay.db.store import SqlEntryStore
from timepay.errors import AlreadyClockedIn, NotFound
from timepay.models import Break, BreakType, TimeEntry, UserPaySettings

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield SqlEntryStore(session)
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def at(day: int, hour: int) -> datetime:
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


def build_entry(entry_id: str, day: int = 4, hours=8, user_id: str = "u1", **kwargs) -> TimeEntry:
    clock_in = at(day, 9)
    clock_out = clock_in + timedelta(hours=hours) if hours is not None else None
    return TimeEntry(id=entry_id, user_id=user_id, clock_in=clock_in, clock_out=clock_out, **kwargs)


def test_partial_unique_index_allows_one_open_entry_per_user(store):
    store.add_entry(build_entry("open", hours=None))

    with pytest.raises(AlreadyClockedIn):
        store.add_entry(build_entry("second", day=5, hours=None))

    store.add_entry(build_entry("closed", day=6))
    store.add_entry(build_entry("other-user", hours=None, user_id="u2"))
    assert store.find_open_entry("u1").id == "open"
    assert store.find_open_entry("u2").id == "other-user"


def test_reopening_an_entry_maps_to_already_clocked_in(store):
    store.add_entry(build_entry("open", day=5, hours=None))
    closed = store.add_entry(build_entry("closed"))

    closed.clock_out = None
    with pytest.raises(AlreadyClockedIn):
        store.save_entry(closed)

    assert store.get_entry("closed").clock_out == at(4, 17)


def test_timestamps_come_back_aware_and_equal(store):
    eastern = ZoneInfo("America/New_York")
    entry = TimeEntry(
        id="e1",
        user_id="u1",
        clock_in=datetime(2024, 3, 4, 9, tzinfo=eastern),
        clock_out=datetime(2024, 3, 4, 17, tzinfo=eastern),
    )
    store.add_entry(entry)

    loaded = store.get_entry("e1")

    assert loaded.clock_in.tzinfo is not None
    assert loaded.clock_in == entry.clock_in
    assert loaded.clock_out == entry.clock_out


def test_breaks_are_synced_and_cascade(store):
    entry = build_entry(
        "e1",
        breaks=[Break(id="b1", entry_id="e1", break_type="meal", start=at(4, 12), end=at(4, 13), duration_minutes=60)],
        total_break_minutes=60,
    )
    store.add_entry(entry)

    loaded = store.get_entry("e1")
    loaded.breaks.append(Break(id="b2", entry_id="e1", break_type="rest", start=at(4, 15), duration_minutes=10))
    loaded.breaks[0].notes = "long lunch"
    store.save_entry(loaded)

    stored = store.find_entry_by_break("b2")
    assert [b.id for b in stored.breaks] == ["b1", "b2"]
    assert stored.breaks[0].notes == "long lunch"
    assert stored.breaks[1].break_type == BreakType.REST

    stored.breaks = stored.breaks[1:]
    store.save_entry(stored)
    assert [b.id for b in store.get_entry("e1").breaks] == ["b2"]

    store.delete_entry("e1")
    with pytest.raises(NotFound):
        store.find_entry_by_break("b2")


def test_range_queries_and_bulk_delete(store):
    for day in (2, 4, 6, 8):
        store.add_entry(build_entry(f"e{day}", day=day))
    store.add_entry(build_entry("other", day=4, user_id="u2"))

    found = store.entries_between("u1", at(3, 0), at(6, 23))

    assert [e.id for e in found] == ["e4", "e6"]
    assert store.earliest_clock_in("u1") == at(2, 9)
    assert store.delete_entries_between("u1", at(3, 0), at(8, 23)) == 3
    assert [e.id for e in store.entries_between("u1", at(1, 0), at(31, 0))] == ["e2"]
    assert store.earliest_clock_in("u3") is None


def test_settings_round_trip(store):
    assert store.settings_for("u1") == UserPaySettings()

    store.save_settings(
        "u1",
        UserPaySettings(hourly_rate="18.75", pay_period_type="weekly", state="CA", state_tax_rate="0.02"),
    )
    store.save_settings("u1", UserPaySettings(hourly_rate="19.25", time_zone="America/Denver"))

    settings = store.settings_for("u1")
    assert settings.hourly_rate == Decimal("19.25")
    assert settings.state is None
    assert settings.state_tax_rate is None
    assert settings.time_zone == "America/Denver"


def test_weekly_schedule_round_trip(store):
    store.save_settings("u1", UserPaySettings(weekly_schedule={"tuesday": "7.5", "thursday": "10"}))

    schedule = store.settings_for("u1").weekly_schedule

    assert schedule.tuesday == Decimal("7.5")
    assert schedule.thursday == Decimal("10")
    assert schedule.monday == 0
    assert store.settings_for("u1") == UserPaySettings(weekly_schedule={"tuesday": "7.5", "thursday": "10"})
