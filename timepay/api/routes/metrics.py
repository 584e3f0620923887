from datetime import datetime

from fastapi import APIRouter, Depends

from timepay.api.deps import current_user_id, get_calculator, get_now, get_store, get_user_settings
from timepay.api.schemas import MetricsOut
from timepay.core.observability import get_tracer
from timepay.db.store import SqlEntryStore
from timepay.metrics import metrics_for
from timepay.models import UserPaySettings
from timepay.paycheck import PaycheckCalculator

router = APIRouter(prefix="/metrics", tags=["metrics"])
tracer = get_tracer(__name__)


@router.get("", response_model=MetricsOut)
def get_metrics(
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
    calculator: PaycheckCalculator = Depends(get_calculator),
    now: datetime = Depends(get_now),
) -> MetricsOut:
    with tracer.start_as_current_span("metrics.build") as span:
        span.set_attribute("timepay.user_id", user_id)
        metrics = metrics_for(store, user_id, settings, now, calculator)
    return MetricsOut.from_metrics(metrics)
