from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from pydantic import AwareDatetime

from timepay.api.deps import current_user_id, get_calculator, get_now, get_store, get_user_settings
from timepay.api.schemas import TimesheetOut
from timepay.core.observability import get_tracer
from timepay.db.store import SqlEntryStore
from timepay.errors import InvalidRange
from timepay.models import PayPeriod, UserPaySettings
from timepay.paycheck import PaycheckCalculator, Timesheet
from timepay.periods import current_period, end_of_day, period_for, start_of_day
from timepay.time_tracking import timesheet_for
from timepay.views import format_timesheet

router = APIRouter(prefix="/timesheet", tags=["timesheet"])
tracer = get_tracer(__name__)


def resolve_period(
    settings: UserPaySettings,
    now: datetime,
    start: datetime | None,
    end: datetime | None,
) -> PayPeriod:
    """Explicit start/end win; a lone start selects the period containing it."""
    if start is None:
        return current_period(settings, now)
    if end is None:
        return period_for(settings, start)
    local_start = settings.localize(start)
    local_end = settings.localize(end)
    period = PayPeriod(
        start=start_of_day(local_start.date(), local_start.tzinfo),
        end=end_of_day(local_end.date(), local_end.tzinfo),
    )
    if period.end <= period.start:
        raise InvalidRange("End date must be after start date")
    return period


def build_timesheet(
    user_id: str,
    settings: UserPaySettings,
    store: SqlEntryStore,
    calculator: PaycheckCalculator,
    now: datetime,
    start: datetime | None,
    end: datetime | None,
) -> Timesheet:
    period = resolve_period(settings, now, start, end)
    with tracer.start_as_current_span("timesheet.build") as span:
        span.set_attribute("timepay.user_id", user_id)
        span.set_attribute("timepay.period_start", period.start.isoformat())
        return timesheet_for(store, user_id, settings, period, as_of=now, calculator=calculator)


@router.get("", response_model=TimesheetOut)
def get_timesheet(
    start: AwareDatetime | None = Query(default=None),
    end: AwareDatetime | None = Query(default=None),
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
    calculator: PaycheckCalculator = Depends(get_calculator),
    now: datetime = Depends(get_now),
) -> TimesheetOut:
    timesheet = build_timesheet(user_id, settings, store, calculator, now, start, end)
    return TimesheetOut.from_timesheet(timesheet, now)


@router.get("/text", response_class=PlainTextResponse)
def get_timesheet_text(
    start: AwareDatetime | None = Query(default=None),
    end: AwareDatetime | None = Query(default=None),
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
    calculator: PaycheckCalculator = Depends(get_calculator),
    now: datetime = Depends(get_now),
) -> str:
    timesheet = build_timesheet(user_id, settings, store, calculator, now, start, end)
    return format_timesheet(timesheet)
