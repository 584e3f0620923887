from datetime import datetime

from fastapi import APIRouter, Depends, Query

from timepay.api.deps import current_user_id, get_now, get_store, get_user_settings
from timepay.api.schemas import CurrentPayPeriodOut, PayPeriodOut
from timepay.db.store import SqlEntryStore
from timepay.models import UserPaySettings
from timepay.periods import current_period, days_remaining, enumerate_periods, periods_since

router = APIRouter(prefix="/pay-periods", tags=["pay-periods"])

MAX_PERIODS = 120


@router.get("", response_model=list[PayPeriodOut])
def list_pay_periods(
    count: int | None = Query(default=None, ge=0, le=MAX_PERIODS),
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
    now: datetime = Depends(get_now),
) -> list[PayPeriodOut]:
    """Without ``count``, every period back to the user's first entry."""
    if count is not None:
        periods = enumerate_periods(settings, now, count)
    else:
        periods = periods_since(settings, now, store.earliest_clock_in(user_id), limit=MAX_PERIODS)
    return [PayPeriodOut.from_period(p) for p in periods]


@router.get("/current", response_model=CurrentPayPeriodOut)
def get_current_pay_period(
    settings: UserPaySettings = Depends(get_user_settings),
    now: datetime = Depends(get_now),
) -> CurrentPayPeriodOut:
    period = current_period(settings, now)
    return CurrentPayPeriodOut(start=period.start, end=period.end, days_remaining=days_remaining(period, now))
