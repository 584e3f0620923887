from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timepay.core.logging import get_logger
from timepay.db.models import BreakRow, PaySettingsRow, TimeEntryRow
from timepay.errors import AlreadyClockedIn, NotFound
from timepay.models import Break, TimeEntry, UserPaySettings
from timepay.storage import EntryStore

logger = get_logger(__name__)

SETTINGS_FIELDS = (
    "hourly_rate",
    "overtime_multiplier",
    "rounding_interval",
    "pay_period_type",
    "pay_period_end_day",
    "paycheck_adjustment",
    "state",
    "state_tax_rate",
    "filing_status",
    "time_zone",
)


def _to_break(row: BreakRow) -> Break:
    return Break(
        id=row.id,
        entry_id=row.entry_id,
        break_type=row.break_type,
        start=row.start,
        end=row.end,
        duration_minutes=row.duration_minutes,
        notes=row.notes,
    )


def _to_entry(row: TimeEntryRow) -> TimeEntry:
    return TimeEntry(
        id=row.id,
        user_id=row.user_id,
        clock_in=row.clock_in,
        clock_out=row.clock_out,
        total_break_minutes=row.total_break_minutes or 0,
        notes=row.notes,
        is_manual=bool(row.is_manual),
        breaks=[_to_break(b) for b in row.breaks],
    )


def _apply_breaks(row: TimeEntryRow, breaks: List[Break]) -> None:
    existing = {b.id: b for b in row.breaks}
    kept = []
    for item in breaks:
        break_row = existing.get(item.id) or BreakRow(id=item.id)
        break_row.break_type = item.break_type.value
        break_row.start = item.start
        break_row.end = item.end
        break_row.duration_minutes = item.duration_minutes
        break_row.notes = item.notes
        kept.append(break_row)
    row.breaks = kept


def _apply_entry(row: TimeEntryRow, entry: TimeEntry) -> None:
    row.user_id = entry.user_id
    row.clock_in = entry.clock_in
    row.clock_out = entry.clock_out
    row.total_break_minutes = entry.total_break_minutes
    row.notes = entry.notes
    row.is_manual = entry.is_manual
    _apply_breaks(row, entry.breaks)


class SqlEntryStore(EntryStore):
    """EntryStore over a SQLAlchemy session.

    The single-open-entry rule is enforced by the partial unique index on
    ``time_entries``; a violation surfaces as ``AlreadyClockedIn``.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _commit(self, entry: TimeEntry) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("open_entry_conflict", user_id=entry.user_id, entry_id=entry.id)
            raise AlreadyClockedIn() from exc

    def _row(self, entry_id: str) -> TimeEntryRow:
        row = self.session.get(TimeEntryRow, entry_id)
        if row is None:
            raise NotFound("Time entry not found")
        return row

    def get_entry(self, entry_id: str) -> TimeEntry:
        return _to_entry(self._row(entry_id))

    def find_open_entry(self, user_id: str) -> Optional[TimeEntry]:
        row = (
            self.session.query(TimeEntryRow)
            .filter(TimeEntryRow.user_id == user_id, TimeEntryRow.clock_out.is_(None))
            .one_or_none()
        )
        return _to_entry(row) if row else None

    def add_entry(self, entry: TimeEntry) -> TimeEntry:
        row = TimeEntryRow(id=entry.id)
        _apply_entry(row, entry)
        self.session.add(row)
        self._commit(entry)
        return entry

    def save_entry(self, entry: TimeEntry) -> TimeEntry:
        row = self._row(entry.id)
        _apply_entry(row, entry)
        self._commit(entry)
        return entry

    def delete_entry(self, entry_id: str) -> None:
        self.session.delete(self._row(entry_id))
        self.session.commit()

    def _between(self, user_id: str, start: datetime, end: datetime):
        return self.session.query(TimeEntryRow).filter(
            TimeEntryRow.user_id == user_id,
            TimeEntryRow.clock_in >= start,
            TimeEntryRow.clock_in <= end,
        )

    def entries_between(self, user_id: str, start: datetime, end: datetime) -> List[TimeEntry]:
        rows = self._between(user_id, start, end).order_by(TimeEntryRow.clock_in.asc()).all()
        return [_to_entry(row) for row in rows]

    def delete_entries_between(self, user_id: str, start: datetime, end: datetime) -> int:
        rows = self._between(user_id, start, end).all()
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        return len(rows)

    def earliest_clock_in(self, user_id: str) -> Optional[datetime]:
        return (
            self.session.query(func.min(TimeEntryRow.clock_in))
            .filter(TimeEntryRow.user_id == user_id)
            .scalar()
        )

    def find_entry_by_break(self, break_id: str) -> TimeEntry:
        row = self.session.get(BreakRow, break_id)
        if row is None:
            raise NotFound("Break not found")
        return _to_entry(row.entry)

    def settings_for(self, user_id: str) -> UserPaySettings:
        row = self.session.get(PaySettingsRow, user_id)
        if row is None:
            return UserPaySettings()
        values = {name: getattr(row, name) for name in SETTINGS_FIELDS}
        return UserPaySettings(**values, weekly_schedule=row.weekly_schedule)

    def save_settings(self, user_id: str, settings: UserPaySettings) -> UserPaySettings:
        row = self.session.get(PaySettingsRow, user_id) or PaySettingsRow(user_id=user_id)
        for name in SETTINGS_FIELDS:
            value = getattr(settings, name)
            setattr(row, name, getattr(value, "value", value))
        row.weekly_schedule = {day: str(hours) for day, hours in settings.weekly_schedule.as_dict().items()}
        self.session.add(row)
        self.session.commit()
        return settings
