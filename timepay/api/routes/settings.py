import dataclasses

from fastapi import APIRouter, Depends

from timepay.api.deps import current_user_id, get_store, get_user_settings
from timepay.api.schemas import SettingsOut, SettingsUpdate, WeeklyScheduleBody
from timepay.core.logging import get_logger
from timepay.db.store import SqlEntryStore
from timepay.models import UserPaySettings, WeeklySchedule

router = APIRouter(prefix="/settings", tags=["settings"])
logger = get_logger(__name__)

NULLABLE_FIELDS = ("state", "state_tax_rate")


@router.get("", response_model=SettingsOut)
def get_settings(settings: UserPaySettings = Depends(get_user_settings)) -> SettingsOut:
    return SettingsOut.from_settings(settings)


@router.put("", response_model=SettingsOut)
def update_settings(
    payload: SettingsUpdate,
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
) -> SettingsOut:
    changes = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or name in NULLABLE_FIELDS
    }
    updated = dataclasses.replace(settings, **changes)
    store.save_settings(user_id, updated)
    logger.info("settings_updated", user_id=user_id, fields=sorted(changes))
    return SettingsOut.from_settings(updated)


@router.get("/schedule", response_model=WeeklyScheduleBody)
def get_schedule(settings: UserPaySettings = Depends(get_user_settings)) -> WeeklyScheduleBody:
    return WeeklyScheduleBody.from_schedule(settings.weekly_schedule)


@router.put("/schedule", response_model=WeeklyScheduleBody)
def replace_schedule(
    payload: WeeklyScheduleBody,
    user_id: str = Depends(current_user_id),
    settings: UserPaySettings = Depends(get_user_settings),
    store: SqlEntryStore = Depends(get_store),
) -> WeeklyScheduleBody:
    schedule = WeeklySchedule.from_dict(payload.model_dump())
    store.save_settings(user_id, dataclasses.replace(settings, weekly_schedule=schedule))
    logger.info("schedule_updated", user_id=user_id, planned_hours=str(schedule.total_hours))
    return WeeklyScheduleBody.from_schedule(schedule)
