from datetime import datetime
from functools import lru_cache

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from timepay.clock import TimeClock, utc_now
from timepay.core.config import settings
from timepay.core.logging import get_logger
from timepay.db.session import get_session
from timepay.db.store import SqlEntryStore
from timepay.models import UserPaySettings
from timepay.paycheck import PaycheckCalculator
from timepay.tax_tables import TaxTableRepository, default_tax_table
from timepay.taxes import TaxCalculator

logger = get_logger(__name__)


def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return user_id


def get_store(db: Session = Depends(get_session)) -> SqlEntryStore:
    return SqlEntryStore(db)


def get_now() -> datetime:
    return utc_now()


def get_time_clock(store: SqlEntryStore = Depends(get_store), now: datetime = Depends(get_now)) -> TimeClock:
    return TimeClock(store, clock=lambda: now)


def get_user_settings(
    user_id: str = Depends(current_user_id),
    store: SqlEntryStore = Depends(get_store),
) -> UserPaySettings:
    return store.settings_for(user_id)


@lru_cache
def get_calculator() -> PaycheckCalculator:
    if settings.tax_table_dir is None:
        table = default_tax_table()
    else:
        table = TaxTableRepository(settings.tax_table_dir).load(settings.tax_table_version)
    logger.info("tax_table_loaded", version=table.version)
    return PaycheckCalculator(TaxCalculator(table))
