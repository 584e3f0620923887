from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import AwareDatetime

from timepay.api.deps import current_user_id, get_calculator, get_now, get_store, get_user_settings
from timepay.api.routes.timesheet import build_timesheet
from timepay.api.schemas import PayCalculationOut
from timepay.core.observability import get_tracer
from timepay.db.store import SqlEntryStore
from timepay.models import UserPaySettings
from timepay.paycheck import PaycheckCalculator

router = APIRouter(prefix="/paycheck", tags=["paycheck"])
tracer = get_tracer(__name__)


@router.get("/estimate", response_model=PayCalculationOut)
def estimate_paycheck(
    hours: Decimal | None = Query(default=None),
    hourly_rate: Decimal | None = Query(default=None),
    weeks: int = Query(default=1),
    start: AwareDatetime | None = Query(default=None),
    end: AwareDatetime | None = Query(default=None),
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
    calculator: PaycheckCalculator = Depends(get_calculator),
    now: datetime = Depends(get_now),
) -> PayCalculationOut:
    """Estimate for ``hours`` when given, otherwise the logged pay for the selected period."""
    if hours is None:
        timesheet = build_timesheet(user_id, settings, store, calculator, now, start, end)
        return PayCalculationOut.from_calculation(timesheet.totals)
    with tracer.start_as_current_span("paycheck.estimate") as span:
        span.set_attribute("timepay.weeks", weeks)
        pay = calculator.estimate(hours, settings, hourly_rate=hourly_rate, weeks=weeks)
    return PayCalculationOut.from_calculation(pay)
