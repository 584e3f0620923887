from __future__ import annotations

import csv
from datetime import datetime
from typing import Iterable, Optional, TextIO

from .hours import break_minutes_for, elapsed
from .models import TimeEntry, UserPaySettings

CSV_HEADERS = [
    "Client Name",
    "Start Time",
    "End Time",
    "Break Time",
    "Worked Hours",
    "Rate/h",
    "Amount",
    "Note",
]


def _date(moment: datetime) -> str:
    return f"{moment:%B} {moment.day}, {moment.year}"


def _datetime(moment: datetime) -> str:
    return f"{_date(moment)} at {moment.hour % 12 or 12:02d}:{moment:%M:%S %p}"


def _break_time(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins:02d}m"


def _worked(entry: TimeEntry, break_minutes: int) -> str:
    if entry.clock_out is None:
        return "0:00"
    minutes = int(elapsed(entry.clock_in, entry.clock_out).total_seconds() // 60) - break_minutes
    hours, mins = divmod(max(minutes, 0), 60)
    return f"{hours}:{mins:02d}"


def export_time_entries(
    handle: TextIO,
    entries: Iterable[TimeEntry],
    settings: UserPaySettings,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> int:
    """Write entries as a timesheet CSV preceded by a date-range banner; returns the row count."""
    local = settings.localize
    handle.write("Date Range\n")
    if start is not None and end is not None:
        handle.write(f"{_date(local(start))} - {_date(local(end))}\n")
    else:
        handle.write("All Entries\n")
    handle.write("\n")

    writer = csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    count = 0
    for entry in sorted(entries, key=lambda e: e.clock_in):
        break_minutes = break_minutes_for(entry)
        writer.writerow(
            [
                "",
                _datetime(local(entry.clock_in)),
                _datetime(local(entry.clock_out)) if entry.clock_out else "",
                _break_time(break_minutes),
                _worked(entry, break_minutes),
                "",
                "",
                entry.notes or "",
            ]
        )
        count += 1
    return count
