from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator

from timepay.clock import ClockStatus
from timepay.hours import resolve_hours
from timepay.metrics import ClockTime, DashboardMetrics
from timepay.models import (
    Break,
    PayCalculation,
    PayPeriod,
    TimeEntry,
    UserPaySettings,
    WeeklySchedule,
    to_cents,
    to_hours,
)
from timepay.overtime import EntryAllocation
from timepay.paycheck import Timesheet, WeekSummary


class BreakOut(BaseModel):
    id: str
    entry_id: str
    break_type: str
    start: datetime
    end: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    minutes: int
    notes: Optional[str] = None

    @classmethod
    def from_break(cls, item: Break) -> "BreakOut":
        return cls(
            id=item.id,
            entry_id=item.entry_id,
            break_type=item.break_type.value,
            start=item.start,
            end=item.end,
            duration_minutes=item.duration_minutes,
            minutes=item.minutes(),
            notes=item.notes,
        )


class TimeEntryOut(BaseModel):
    id: str
    user_id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    total_break_minutes: int
    notes: Optional[str] = None
    is_manual: bool
    is_open: bool
    hours: Decimal
    breaks: list[BreakOut] = []

    @classmethod
    def from_entry(cls, entry: TimeEntry, as_of: Optional[datetime] = None) -> "TimeEntryOut":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            clock_in=entry.clock_in,
            clock_out=entry.clock_out,
            total_break_minutes=entry.total_break_minutes,
            notes=entry.notes,
            is_manual=entry.is_manual,
            is_open=entry.is_open,
            hours=to_hours(resolve_hours(entry, as_of)),
            breaks=[BreakOut.from_break(b) for b in entry.breaks],
        )


class ClockInRequest(BaseModel):
    at: Optional[AwareDatetime] = None


class ClockOutRequest(BaseModel):
    at: Optional[AwareDatetime] = None
    break_minutes: Optional[int] = Field(default=None, ge=0)


class ClockStatusOut(BaseModel):
    state: Literal["clocked_in", "clocked_out"]
    is_clocked_in: bool
    entry: Optional[TimeEntryOut] = None
    elapsed_hours: Decimal
    current_earnings: Decimal

    @classmethod
    def from_status(cls, status: ClockStatus, settings: UserPaySettings, now: datetime) -> "ClockStatusOut":
        hours = status.elapsed_hours(now)
        return cls(
            state=status.state.value,
            is_clocked_in=status.is_clocked_in,
            entry=TimeEntryOut.from_entry(status.entry, now) if status.entry else None,
            elapsed_hours=to_hours(hours),
            current_earnings=to_cents(hours * settings.hourly_rate),
        )


class TimeEntryCreate(BaseModel):
    clock_in: AwareDatetime
    clock_out: Optional[AwareDatetime] = None
    notes: Optional[str] = None
    is_manual: bool = True


class TimeEntryUpdate(BaseModel):
    clock_in: Optional[AwareDatetime] = None
    clock_out: Optional[AwareDatetime] = None
    notes: Optional[str] = None
    total_break_minutes: Optional[int] = None


class DateRange(BaseModel):
    start: AwareDatetime
    end: AwareDatetime


class BulkDeleteOut(BaseModel):
    deleted: int


class BreakCreate(BaseModel):
    break_type: str = "meal"
    start: AwareDatetime
    end: Optional[AwareDatetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class BreakUpdate(BaseModel):
    break_type: Optional[str] = None
    start: Optional[AwareDatetime] = None
    end: Optional[AwareDatetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class PayPeriodOut(BaseModel):
    start: datetime
    end: datetime

    @classmethod
    def from_period(cls, period: PayPeriod) -> "PayPeriodOut":
        return cls(start=period.start, end=period.end)


class CurrentPayPeriodOut(PayPeriodOut):
    days_remaining: int


class PayCalculationOut(BaseModel):
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    federal_tax: Decimal
    state_tax: Decimal
    fica: Decimal
    adjustment: Decimal
    net_pay: Decimal

    @classmethod
    def from_calculation(cls, pay: PayCalculation) -> "PayCalculationOut":
        return cls(
            regular_hours=pay.regular_hours,
            overtime_hours=pay.overtime_hours,
            total_hours=pay.total_hours,
            regular_pay=pay.regular_pay,
            overtime_pay=pay.overtime_pay,
            gross_pay=pay.gross_pay,
            federal_tax=pay.federal_tax,
            state_tax=pay.state_tax,
            fica=pay.fica,
            adjustment=pay.adjustment,
            net_pay=pay.net_pay,
        )


class EntryAllocationOut(BaseModel):
    entry: TimeEntryOut
    hours: Decimal
    break_minutes: int
    regular_hours: Decimal
    overtime_hours: Decimal
    pay: Decimal

    @classmethod
    def from_allocation(cls, allocation: EntryAllocation, as_of: datetime) -> "EntryAllocationOut":
        return cls(
            entry=TimeEntryOut.from_entry(allocation.entry, as_of),
            hours=to_hours(allocation.hours),
            break_minutes=allocation.break_minutes,
            regular_hours=to_hours(allocation.regular_hours),
            overtime_hours=to_hours(allocation.overtime_hours),
            pay=to_cents(allocation.pay),
        )


class WeekOut(BaseModel):
    number: int
    start: datetime
    end: datetime
    total_hours: Decimal
    previous_period_hours: Decimal
    entries: list[EntryAllocationOut]
    pay: PayCalculationOut

    @classmethod
    def from_week(cls, week: WeekSummary, as_of: datetime) -> "WeekOut":
        return cls(
            number=week.number,
            start=week.span.start,
            end=week.span.end,
            total_hours=to_hours(week.total_hours),
            previous_period_hours=to_hours(week.previous_period_hours),
            entries=[EntryAllocationOut.from_allocation(a, as_of) for a in week.allocation.entries],
            pay=PayCalculationOut.from_calculation(week.pay),
        )


class TimesheetOut(BaseModel):
    period: PayPeriodOut
    total_hours: Decimal
    weeks: list[WeekOut]
    totals: PayCalculationOut

    @classmethod
    def from_timesheet(cls, timesheet: Timesheet, as_of: datetime) -> "TimesheetOut":
        return cls(
            period=PayPeriodOut.from_period(timesheet.period),
            total_hours=to_hours(timesheet.total_hours),
            weeks=[WeekOut.from_week(w, as_of) for w in timesheet.weeks],
            totals=PayCalculationOut.from_calculation(timesheet.totals),
        )


class WeeklyScheduleBody(BaseModel):
    """Planned hours per weekday; days left out plan zero hours."""

    model_config = ConfigDict(extra="forbid")

    monday: Decimal = Decimal("0")
    tuesday: Decimal = Decimal("0")
    wednesday: Decimal = Decimal("0")
    thursday: Decimal = Decimal("0")
    friday: Decimal = Decimal("0")
    saturday: Decimal = Decimal("0")
    sunday: Decimal = Decimal("0")

    @classmethod
    def from_schedule(cls, schedule: WeeklySchedule) -> "WeeklyScheduleBody":
        return cls(**schedule.as_dict())


class SettingsOut(BaseModel):
    hourly_rate: Decimal
    overtime_multiplier: Decimal
    rounding_interval: int
    pay_period_type: Literal["weekly", "monthly"]
    pay_period_end_day: int
    paycheck_adjustment: Decimal
    state: Optional[str] = None
    state_tax_rate: Optional[Decimal] = None
    filing_status: Literal["single", "married"]
    time_zone: str
    weekly_schedule: WeeklyScheduleBody

    @classmethod
    def from_settings(cls, settings: UserPaySettings) -> "SettingsOut":
        return cls(
            hourly_rate=settings.hourly_rate,
            overtime_multiplier=settings.overtime_multiplier,
            rounding_interval=settings.rounding_interval,
            pay_period_type=settings.pay_period_type.value,
            pay_period_end_day=settings.pay_period_end_day,
            paycheck_adjustment=settings.paycheck_adjustment,
            state=settings.state,
            state_tax_rate=settings.state_tax_rate,
            filing_status=settings.filing_status.value,
            time_zone=settings.time_zone,
            weekly_schedule=WeeklyScheduleBody.from_schedule(settings.weekly_schedule),
        )


class SettingsUpdate(BaseModel):
    hourly_rate: Optional[Decimal] = None
    overtime_multiplier: Optional[Decimal] = None
    rounding_interval: Optional[int] = None
    pay_period_type: Optional[Literal["weekly", "monthly"]] = None
    pay_period_end_day: Optional[int] = None
    paycheck_adjustment: Optional[Decimal] = None
    state: Optional[str] = None
    state_tax_rate: Optional[Decimal] = None
    filing_status: Optional[Literal["single", "married"]] = None
    time_zone: Optional[str] = None
    weekly_schedule: Optional[WeeklyScheduleBody] = None

    @field_validator("state")
    @classmethod
    def normalize_state(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().upper() or None


class ClockTimeOut(BaseModel):
    hour: int
    minute: int


class MetricsOut(BaseModel):
    period: PayPeriodOut
    total_hours: Decimal
    completed_entries: int
    days_worked: int
    average_hours_per_day: Decimal
    scheduled_hours: Decimal
    pay: PayCalculationOut
    average_clock_in: Optional[ClockTimeOut] = None
    average_clock_out: Optional[ClockTimeOut] = None
    daily_hours: dict[date, Decimal]
    recent_hours: Decimal
    recent_entries: int

    @classmethod
    def from_metrics(cls, metrics: DashboardMetrics) -> "MetricsOut":
        def clock_time(value: Optional[ClockTime]) -> Optional[ClockTimeOut]:
            return ClockTimeOut(hour=value.hour, minute=value.minute) if value else None

        return cls(
            period=PayPeriodOut.from_period(metrics.period),
            total_hours=metrics.total_hours,
            completed_entries=metrics.completed_entries,
            days_worked=metrics.days_worked,
            average_hours_per_day=metrics.average_hours_per_day,
            scheduled_hours=metrics.scheduled_hours,
            pay=PayCalculationOut.from_calculation(metrics.pay),
            average_clock_in=clock_time(metrics.average_clock_in),
            average_clock_out=clock_time(metrics.average_clock_out),
            daily_hours=metrics.daily_hours,
            recent_hours=metrics.recent_hours,
            recent_entries=metrics.recent_entries,
        )
