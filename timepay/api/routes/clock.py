from datetime import datetime

from fastapi import APIRouter, Depends

from timepay.api.deps import current_user_id, get_now, get_time_clock, get_user_settings
from timepay.api.schemas import ClockInRequest, ClockOutRequest, ClockStatusOut, TimeEntryOut
from timepay.clock import TimeClock
from timepay.core.observability import get_meter
from timepay.models import UserPaySettings

router = APIRouter(prefix="/clock", tags=["clock"])
meter = get_meter(__name__)
clock_events = meter.create_counter("timepay.clock.events", description="Clock transitions by action")


@router.get("/status", response_model=ClockStatusOut)
def clock_status(
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    clock: TimeClock = Depends(get_time_clock),
    now: datetime = Depends(get_now),
) -> ClockStatusOut:
    return ClockStatusOut.from_status(clock.status(user_id), settings, now)


@router.post("/in", response_model=TimeEntryOut, status_code=201)
def clock_in(
    payload: ClockInRequest | None = None,
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    clock: TimeClock = Depends(get_time_clock),
    now: datetime = Depends(get_now),
) -> TimeEntryOut:
    entry = clock.clock_in(user_id, settings, at=payload.at if payload else None)
    clock_events.add(1, {"action": "in"})
    return TimeEntryOut.from_entry(entry, now)


@router.post("/out", response_model=TimeEntryOut)
def clock_out(
    payload: ClockOutRequest | None = None,
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    clock: TimeClock = Depends(get_time_clock),
) -> TimeEntryOut:
    payload = payload or ClockOutRequest()
    entry = clock.clock_out(user_id, settings, at=payload.at, break_minutes=payload.break_minutes)
    clock_events.add(1, {"action": "out"})
    return TimeEntryOut.from_entry(entry)


@router.post("/cancel", response_model=TimeEntryOut)
def cancel_clock_in(
    user_id: str = Depends(current_user_id),
    clock: TimeClock = Depends(get_time_clock),
    now: datetime = Depends(get_now),
) -> TimeEntryOut:
    entry = clock.cancel_clock_in(user_id)
    clock_events.add(1, {"action": "cancel"})
    return TimeEntryOut.from_entry(entry, now)
