from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from filelock import FileLock

from .errors import AlreadyClockedIn, NotFound
from .models import Break, TimeEntry, UserPaySettings


class EntryStore:
    """Persistence contract for time entries and per-user pay settings.

    Implementations must make ``add_entry``/``save_entry`` atomic with respect
    to the single-open-entry invariant and raise ``AlreadyClockedIn`` rather
    than persist a second open entry for a user.
    """

    def get_entry(self, entry_id: str) -> TimeEntry:
        raise NotImplementedError

    def find_open_entry(self, user_id: str) -> Optional[TimeEntry]:
        raise NotImplementedError

    def add_entry(self, entry: TimeEntry) -> TimeEntry:
        raise NotImplementedError

    def save_entry(self, entry: TimeEntry) -> TimeEntry:
        raise NotImplementedError

    def delete_entry(self, entry_id: str) -> None:
        raise NotImplementedError

    def entries_between(self, user_id: str, start: datetime, end: datetime) -> List[TimeEntry]:
        """Entries with ``start <= clock_in <= end``, oldest first."""
        raise NotImplementedError

    def delete_entries_between(self, user_id: str, start: datetime, end: datetime) -> int:
        raise NotImplementedError

    def earliest_clock_in(self, user_id: str) -> Optional[datetime]:
        raise NotImplementedError

    def find_entry_by_break(self, break_id: str) -> TimeEntry:
        raise NotImplementedError

    def settings_for(self, user_id: str) -> UserPaySettings:
        raise NotImplementedError

    def save_settings(self, user_id: str, settings: UserPaySettings) -> UserPaySettings:
        raise NotImplementedError


class DataStore(EntryStore):
    """In-process store, optionally mirrored to a JSON file.

    With a path, every operation re-reads the file under an inter-process
    lock (``<path>.lock``) and mutations write it back before the lock is
    released, so separate processes sharing the file see each other's
    entries and still hold at most one open entry per user.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self.time_entries: Dict[str, TimeEntry] = {}
        self.settings: Dict[str, UserPaySettings] = {}
        self._lock = threading.RLock()
        self._file_lock: Optional[FileLock] = None
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file_lock = FileLock(str(path) + ".lock")
            with self._file_lock:
                if path.exists():
                    self.load()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            if self._file_lock is None:
                yield
                return
            with self._file_lock:
                if self.path.exists():
                    self.load()
                yield

    def load(self) -> None:
        content = json.loads(self.path.read_text())
        self.time_entries = {t["id"]: self._deserialize_time_entry(t) for t in content.get("time_entries", [])}
        self.settings = {
            user_id: UserPaySettings(**values) for user_id, values in content.get("settings", {}).items()
        }

    def save(self) -> None:
        if self.path is None:
            return
        payload = {
            "time_entries": [asdict(t) for t in self.time_entries.values()],
            "settings": {user_id: asdict(s) for user_id, s in self.settings.items()},
        }
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as handle:
                handle.write(json.dumps(payload, default=self._serializer, indent=2))
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _open_entry_unlocked(self, user_id: str, exclude: Optional[str] = None) -> Optional[TimeEntry]:
        for entry in self.time_entries.values():
            if entry.user_id == user_id and entry.is_open and entry.id != exclude:
                return entry
        return None

    def get_entry(self, entry_id: str) -> TimeEntry:
        with self._locked():
            entry = self.time_entries.get(entry_id)
            if entry is None:
                raise NotFound("Time entry not found")
            return copy.deepcopy(entry)

    def find_open_entry(self, user_id: str) -> Optional[TimeEntry]:
        with self._locked():
            entry = self._open_entry_unlocked(user_id)
            return copy.deepcopy(entry) if entry else None

    def add_entry(self, entry: TimeEntry) -> TimeEntry:
        with self._locked():
            if entry.is_open and self._open_entry_unlocked(entry.user_id):
                raise AlreadyClockedIn()
            self.time_entries[entry.id] = copy.deepcopy(entry)
            self.save()
            return entry

    def save_entry(self, entry: TimeEntry) -> TimeEntry:
        with self._locked():
            if entry.id not in self.time_entries:
                raise NotFound("Time entry not found")
            if entry.is_open and self._open_entry_unlocked(entry.user_id, exclude=entry.id):
                raise AlreadyClockedIn()
            self.time_entries[entry.id] = copy.deepcopy(entry)
            self.save()
            return entry

    def delete_entry(self, entry_id: str) -> None:
        with self._locked():
            if self.time_entries.pop(entry_id, None) is None:
                raise NotFound("Time entry not found")
            self.save()

    def entries_between(self, user_id: str, start: datetime, end: datetime) -> List[TimeEntry]:
        with self._locked():
            entries = [
                copy.deepcopy(e)
                for e in self.time_entries.values()
                if e.user_id == user_id and start <= e.clock_in <= end
            ]
        return sorted(entries, key=lambda e: e.clock_in)

    def delete_entries_between(self, user_id: str, start: datetime, end: datetime) -> int:
        with self._locked():
            doomed = [
                e.id for e in self.time_entries.values() if e.user_id == user_id and start <= e.clock_in <= end
            ]
            for entry_id in doomed:
                del self.time_entries[entry_id]
            self.save()
            return len(doomed)

    def earliest_clock_in(self, user_id: str) -> Optional[datetime]:
        with self._locked():
            moments = [e.clock_in for e in self.time_entries.values() if e.user_id == user_id]
        return min(moments) if moments else None

    def find_entry_by_break(self, break_id: str) -> TimeEntry:
        with self._locked():
            for entry in self.time_entries.values():
                if entry.find_break(break_id) is not None:
                    return copy.deepcopy(entry)
        raise NotFound("Break not found")

    def settings_for(self, user_id: str) -> UserPaySettings:
        with self._locked():
            return copy.deepcopy(self.settings.get(user_id) or UserPaySettings())

    def save_settings(self, user_id: str, settings: UserPaySettings) -> UserPaySettings:
        with self._locked():
            self.settings[user_id] = copy.deepcopy(settings)
            self.save()
            return settings

    @staticmethod
    def _serializer(value):
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        raise TypeError(f"Type {type(value)} not serializable")

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        return datetime.fromisoformat(value) if value else None

    def _deserialize_break(self, data: dict) -> Break:
        data["start"] = self._parse_datetime(data["start"])
        data["end"] = self._parse_datetime(data.get("end"))
        return Break(**data)

    def _deserialize_time_entry(self, data: dict) -> TimeEntry:
        data["clock_in"] = self._parse_datetime(data["clock_in"])
        data["clock_out"] = self._parse_datetime(data.get("clock_out"))
        data["breaks"] = [self._deserialize_break(b) for b in data.get("breaks", [])]
        return TimeEntry(**data)
