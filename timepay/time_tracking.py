from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from .core.logging import get_logger
from .errors import InvalidRange, NotFound, ValidationError
from .models import Break, BreakType, PayPeriod, TimeEntry, UserPaySettings
from .paycheck import PaycheckCalculator, Timesheet
from .periods import end_of_day
from .rounding import round_up
from .storage import EntryStore
from .weeks import carry_over_window

logger = get_logger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()
FAR_FUTURE = datetime(9999, 1, 1, tzinfo=timezone.utc)


def _overlapping(
    store: EntryStore, user_id: str, start: datetime, end: datetime, now: datetime
) -> Optional[TimeEntry]:
    earliest = store.earliest_clock_in(user_id)
    if earliest is None or earliest >= end:
        return None
    for existing in store.entries_between(user_id, earliest, end):
        if existing.clock_out is None:
            # An open entry only collides with a range reaching past now.
            if end <= now:
                continue
            existing_end = now
        else:
            existing_end = existing.clock_out
        if existing.clock_in < end and start < existing_end:
            return existing
    return None


def create_time_entry(
    store: EntryStore,
    user_id: str,
    settings: UserPaySettings,
    clock_in: datetime,
    clock_out: Optional[datetime] = None,
    notes: Optional[str] = None,
    is_manual: bool = True,
    now: Optional[datetime] = None,
) -> TimeEntry:
    """Record a manual entry with both ends rounded up to the user's interval.

    Ranges that overlap an existing entry are rejected. An entry without
    ``clock_out`` becomes the user's open entry, so the single-open-entry
    rule applies to it like a regular clock-in.
    """
    clock_in = round_up(settings.localize(clock_in), settings.rounding_interval)
    if clock_out is not None:
        clock_out = round_up(settings.localize(clock_out), settings.rounding_interval)
        if clock_out <= clock_in:
            raise InvalidRange()

    now = settings.localize(now or datetime.now(settings.zone))
    existing = _overlapping(store, user_id, clock_in, clock_out or now, now)
    if existing is not None:
        existing_end = existing.clock_out.isoformat() if existing.clock_out else "still open"
        raise ValidationError(
            f"Time entry overlaps with existing entry from {existing.clock_in.isoformat()} to {existing_end}"
        )

    entry = TimeEntry(
        id=str(uuid4()),
        user_id=user_id,
        clock_in=clock_in,
        clock_out=clock_out,
        notes=notes,
        is_manual=is_manual,
    )
    store.add_entry(entry)
    logger.info("entry_created", user_id=user_id, entry_id=entry.id, manual=is_manual)
    return entry


def get_time_entry(store: EntryStore, user_id: str, entry_id: str) -> TimeEntry:
    entry = store.get_entry(entry_id)
    if entry.user_id != user_id:
        raise NotFound("Time entry not found")
    return entry


def list_time_entries(
    store: EntryStore,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[TimeEntry]:
    if start is None:
        start = store.earliest_clock_in(user_id)
        if start is None:
            return []
    if end is None:
        end = FAR_FUTURE
    if end < start:
        raise ValidationError("Start date must be before end date")
    return store.entries_between(user_id, start, end)


def export_window(
    settings: UserPaySettings,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Localize an export range and stretch its end to the close of that local day."""
    if start is not None:
        start = settings.localize(start)
    if end is not None:
        local_end = settings.localize(end)
        end = end_of_day(local_end.date(), local_end.tzinfo)
    return start, end


def update_time_entry(
    store: EntryStore,
    user_id: str,
    entry_id: str,
    clock_in=UNSET,
    clock_out=UNSET,
    notes=UNSET,
    total_break_minutes=UNSET,
) -> TimeEntry:
    """Apply an edit as given; edited times are not rounded."""
    entry = get_time_entry(store, user_id, entry_id)
    if clock_in is not UNSET:
        if clock_in is None:
            raise ValidationError("Clock in time is required")
        entry.clock_in = clock_in
    if clock_out is not UNSET:
        entry.clock_out = clock_out
    if notes is not UNSET:
        entry.notes = notes
    if total_break_minutes is not UNSET:
        if total_break_minutes is None or total_break_minutes < 0:
            raise ValidationError("Break minutes must be non-negative")
        if entry.breaks:
            raise ValidationError("Break minutes are derived from the recorded breaks")
        entry.total_break_minutes = total_break_minutes

    if entry.clock_out is not None and entry.clock_out <= entry.clock_in:
        raise InvalidRange()
    store.save_entry(entry)
    logger.info("entry_updated", user_id=user_id, entry_id=entry.id)
    return entry


def delete_time_entry(store: EntryStore, user_id: str, entry_id: str) -> None:
    entry = get_time_entry(store, user_id, entry_id)
    store.delete_entry(entry.id)
    logger.info("entry_deleted", user_id=user_id, entry_id=entry.id)


def delete_time_entries(store: EntryStore, user_id: str, start: datetime, end: datetime) -> int:
    if end < start:
        raise ValidationError("Start date must be before end date")
    deleted = store.delete_entries_between(user_id, start, end)
    logger.info("entries_bulk_deleted", user_id=user_id, count=deleted)
    return deleted


def _break_duration(start: datetime, end: Optional[datetime], duration_minutes: Optional[int]) -> Optional[int]:
    if end is None:
        return duration_minutes
    measured = round((end - start).total_seconds() / 60)
    if duration_minutes is not None and duration_minutes != measured:
        raise ValidationError("Break duration does not match its start and end times")
    return measured


def _refresh_break_total(entry: TimeEntry) -> None:
    entry.total_break_minutes = sum(item.minutes() for item in entry.breaks)


def add_break(
    store: EntryStore,
    user_id: str,
    entry_id: str,
    break_type: BreakType | str,
    start: datetime,
    end: Optional[datetime] = None,
    duration_minutes: Optional[int] = None,
    notes: Optional[str] = None,
) -> Break:
    entry = get_time_entry(store, user_id, entry_id)
    item = Break(
        id=str(uuid4()),
        entry_id=entry.id,
        break_type=break_type,
        start=start,
        end=end,
        duration_minutes=_break_duration(start, end, duration_minutes),
        notes=notes,
    )
    entry.breaks.append(item)
    _refresh_break_total(entry)
    store.save_entry(entry)
    logger.info("break_added", user_id=user_id, entry_id=entry.id, break_id=item.id, minutes=item.minutes())
    return item


def _owned_break(store: EntryStore, user_id: str, break_id: str) -> tuple[TimeEntry, Break]:
    entry = store.find_entry_by_break(break_id)
    if entry.user_id != user_id:
        raise NotFound("Break not found")
    return entry, entry.find_break(break_id)


def update_break(
    store: EntryStore,
    user_id: str,
    break_id: str,
    break_type=UNSET,
    start=UNSET,
    end=UNSET,
    duration_minutes=UNSET,
    notes=UNSET,
) -> Break:
    entry, item = _owned_break(store, user_id, break_id)
    new_start = item.start if start is UNSET else start
    new_end = item.end if end is UNSET else end
    if duration_minutes is UNSET:
        duration = item.duration_minutes if new_end is None else None
    else:
        duration = duration_minutes

    updated = Break(
        id=item.id,
        entry_id=item.entry_id,
        break_type=item.break_type if break_type is UNSET else break_type,
        start=new_start,
        end=new_end,
        duration_minutes=_break_duration(new_start, new_end, duration),
        notes=item.notes if notes is UNSET else notes,
    )
    entry.breaks = [updated if b.id == break_id else b for b in entry.breaks]
    _refresh_break_total(entry)
    store.save_entry(entry)
    logger.info("break_updated", user_id=user_id, entry_id=entry.id, break_id=break_id)
    return updated


def delete_break(store: EntryStore, user_id: str, break_id: str) -> TimeEntry:
    entry, _ = _owned_break(store, user_id, break_id)
    entry.breaks = [b for b in entry.breaks if b.id != break_id]
    _refresh_break_total(entry)
    store.save_entry(entry)
    logger.info("break_deleted", user_id=user_id, entry_id=entry.id, break_id=break_id)
    return entry


def timesheet_for(
    store: EntryStore,
    user_id: str,
    settings: UserPaySettings,
    period: PayPeriod,
    as_of: datetime,
    calculator: Optional[PaycheckCalculator] = None,
) -> Timesheet:
    calculator = calculator or PaycheckCalculator()
    window_start, _ = carry_over_window(period)
    entries = store.entries_between(user_id, window_start, period.end)
    timesheet = calculator.timesheet(period, entries, settings, as_of=as_of)
    logger.info(
        "timesheet_built",
        user_id=user_id,
        period_start=period.start.isoformat(),
        weeks=len(timesheet.weeks),
        gross=str(timesheet.totals.gross_pay),
    )
    return timesheet
