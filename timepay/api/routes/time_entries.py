import io
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import AwareDatetime

from timepay import time_tracking
from timepay.api.deps import current_user_id, get_now, get_store, get_user_settings
from timepay.api.schemas import (
    BreakCreate,
    BreakOut,
    BreakUpdate,
    BulkDeleteOut,
    DateRange,
    TimeEntryCreate,
    TimeEntryOut,
    TimeEntryUpdate,
)
from timepay.csv_io import export_time_entries
from timepay.db.store import SqlEntryStore
from timepay.models import UserPaySettings

router = APIRouter(prefix="/time-entries", tags=["time-entries"])


@router.get("", response_model=list[TimeEntryOut])
def list_entries(
    start: AwareDatetime | None = Query(default=None),
    end: AwareDatetime | None = Query(default=None),
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> list[TimeEntryOut]:
    entries = time_tracking.list_time_entries(store, user_id, start, end)
    return [TimeEntryOut.from_entry(entry, now) for entry in reversed(entries)]


@router.post("", response_model=TimeEntryOut, status_code=201)
def create_entry(
    payload: TimeEntryCreate,
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> TimeEntryOut:
    entry = time_tracking.create_time_entry(
        store,
        user_id,
        settings,
        clock_in=payload.clock_in,
        clock_out=payload.clock_out,
        notes=payload.notes,
        is_manual=payload.is_manual,
        now=now,
    )
    return TimeEntryOut.from_entry(entry, now)


@router.post("/bulk-delete", response_model=BulkDeleteOut)
def bulk_delete(
    payload: DateRange,
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
) -> BulkDeleteOut:
    deleted = time_tracking.delete_time_entries(store, user_id, payload.start, payload.end)
    return BulkDeleteOut(deleted=deleted)


@router.get("/export", response_class=Response)
def export_entries(
    start: AwareDatetime | None = Query(default=None),
    end: AwareDatetime | None = Query(default=None),
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> Response:
    start, end = time_tracking.export_window(settings, start, end)
    entries = time_tracking.list_time_entries(store, user_id, start, end)
    buffer = io.StringIO()
    export_time_entries(buffer, entries, settings, start, end)
    if start is not None and end is not None:
        filename = f"time-entries-{start.date().isoformat()}-{end.date().isoformat()}.csv"
    else:
        filename = f"time-entries-{now.date().isoformat()}.csv"
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/breaks/{break_id}", response_model=BreakOut)
def update_break(
    break_id: str,
    payload: BreakUpdate,
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
) -> BreakOut:
    changes = payload.model_dump(exclude_unset=True)
    item = time_tracking.update_break(store, user_id, break_id, **changes)
    return BreakOut.from_break(item)


@router.delete("/breaks/{break_id}", response_model=TimeEntryOut)
def delete_break(
    break_id: str,
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> TimeEntryOut:
    entry = time_tracking.delete_break(store, user_id, break_id)
    return TimeEntryOut.from_entry(entry, now)


@router.get("/{entry_id}", response_model=TimeEntryOut)
def get_entry(
    entry_id: str,
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> TimeEntryOut:
    return TimeEntryOut.from_entry(time_tracking.get_time_entry(store, user_id, entry_id), now)


@router.put("/{entry_id}", response_model=TimeEntryOut)
def update_entry(
    entry_id: str,
    payload: TimeEntryUpdate,
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> TimeEntryOut:
    changes = payload.model_dump(exclude_unset=True)
    entry = time_tracking.update_time_entry(store, user_id, entry_id, **changes)
    return TimeEntryOut.from_entry(entry, now)


@router.delete("/{entry_id}", status_code=204)
def delete_entry(
    entry_id: str,
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
) -> Response:
    time_tracking.delete_time_entry(store, user_id, entry_id)
    return Response(status_code=204)


@router.post("/{entry_id}/breaks", response_model=BreakOut, status_code=201)
def add_break(
    entry_id: str,
    payload: BreakCreate,
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
) -> BreakOut:
    item = time_tracking.add_break(
        store,
        user_id,
        entry_id,
        break_type=payload.break_type,
        start=payload.start,
        end=payload.end,
        duration_minutes=payload.duration_minutes,
        notes=payload.notes,
    )
    return BreakOut.from_break(item)
