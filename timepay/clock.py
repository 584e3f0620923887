from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional
from uuid import uuid4

from .core.logging import get_logger
from .errors import InvalidRange, NotClockedIn, ValidationError
from .hours import resolve_hours
from .models import ZERO, TimeEntry, UserPaySettings
from .rounding import round_up
from .storage import EntryStore

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClockState(str, Enum):
    CLOCKED_OUT = "clocked_out"
    CLOCKED_IN = "clocked_in"


@dataclass
class ClockStatus:
    state: ClockState
    entry: Optional[TimeEntry] = None

    @property
    def is_clocked_in(self) -> bool:
        return self.state == ClockState.CLOCKED_IN

    def elapsed_hours(self, as_of: datetime) -> Decimal:
        if self.entry is None:
            return ZERO
        return resolve_hours(self.entry, as_of)


class TimeClock:
    """Clock-in/clock-out lifecycle for a user's single open entry."""

    def __init__(self, store: EntryStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self.clock = clock

    def status(self, user_id: str) -> ClockStatus:
        entry = self.store.find_open_entry(user_id)
        if entry is None:
            return ClockStatus(state=ClockState.CLOCKED_OUT)
        return ClockStatus(state=ClockState.CLOCKED_IN, entry=entry)

    def clock_in(self, user_id: str, settings: UserPaySettings, at: Optional[datetime] = None) -> TimeEntry:
        requested = settings.localize(at or self.clock())
        clock_in = round_up(requested, settings.rounding_interval)
        entry = TimeEntry(
            id=str(uuid4()),
            user_id=user_id,
            clock_in=clock_in,
            is_manual=at is not None,
        )
        # The store rejects a second open entry atomically.
        self.store.add_entry(entry)
        if clock_in != requested:
            logger.info("clock_in_rounded", user_id=user_id, requested=requested.isoformat(), rounded=clock_in.isoformat())
        logger.info("clock_in", user_id=user_id, entry_id=entry.id, clock_in=clock_in.isoformat())
        return entry

    def clock_out(
        self,
        user_id: str,
        settings: UserPaySettings,
        at: Optional[datetime] = None,
        break_minutes: Optional[int] = None,
    ) -> TimeEntry:
        entry = self.store.find_open_entry(user_id)
        if entry is None:
            raise NotClockedIn()
        if at is None:
            clock_out = settings.localize(self.clock())
        else:
            clock_out = round_up(settings.localize(at), settings.rounding_interval)
        if clock_out <= entry.clock_in:
            raise InvalidRange()
        if break_minutes is not None:
            if break_minutes < 0:
                raise ValidationError("Break minutes must be non-negative")
            if entry.breaks:
                raise ValidationError("Break minutes are derived from the recorded breaks")
            entry.total_break_minutes = break_minutes

        entry.clock_out = clock_out
        self.store.save_entry(entry)
        logger.info(
            "clock_out",
            user_id=user_id,
            entry_id=entry.id,
            clock_out=clock_out.isoformat(),
            hours=str(resolve_hours(entry)),
        )
        return entry

    def cancel_clock_in(self, user_id: str) -> TimeEntry:
        entry = self.store.find_open_entry(user_id)
        if entry is None:
            raise NotClockedIn()
        self.store.delete_entry(entry.id)
        logger.info("clock_in_cancelled", user_id=user_id, entry_id=entry.id)
        return entry
