from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ValidationError

CENTS = Decimal("0.01")
ZERO = Decimal("0")
ROUNDING_INTERVALS = (1, 5, 10, 15, 30)
# Upper bounds follow the widths of the pay_settings columns.
MAX_HOURLY_RATE = Decimal("100000000")
MAX_OVERTIME_MULTIPLIER = Decimal("1000")
MAX_ADJUSTMENT = Decimal("10000000000")
HOURS_PER_DAY = Decimal("24")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid numeric value: {value!r}") from exc
    if not number.is_finite():
        raise ValidationError(f"Invalid numeric value: {value!r}")
    return number


def _quantize(value: Decimal) -> Decimal:
    try:
        return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError(f"Value out of range: {value}") from exc


def to_cents(value: Decimal) -> Decimal:
    return _quantize(value)


def to_hours(value: Decimal) -> Decimal:
    return _quantize(value)


class BreakType(str, Enum):
    MEAL = "meal"
    REST = "rest"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "BreakType | str") -> "BreakType":
        if isinstance(value, BreakType):
            return value
        normalized = str(value).strip().lower()
        if normalized == "lunch":
            return cls.MEAL
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValidationError(f"Unknown break type: {value!r}") from exc


class PayPeriodType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED = "married"


@dataclass
class Break:
    id: str
    entry_id: str
    break_type: BreakType
    start: datetime
    end: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        self.break_type = BreakType.parse(self.break_type)
        if self.end is not None and self.end < self.start:
            raise ValidationError("Break end must not be before break start")
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ValidationError("Break duration must be non-negative")

    def minutes(self) -> int:
        if self.duration_minutes is not None:
            return self.duration_minutes
        if self.end is not None:
            return round((self.end - self.start).total_seconds() / 60)
        return 0


@dataclass
class TimeEntry:
    id: str
    user_id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    total_break_minutes: int = 0
    notes: Optional[str] = None
    is_manual: bool = False
    breaks: List[Break] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.total_break_minutes < 0:
            raise ValidationError("Break minutes must be non-negative")

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    def find_break(self, break_id: str) -> Optional[Break]:
        for item in self.breaks:
            if item.id == break_id:
                return item
        return None


@dataclass
class WeeklySchedule:
    """Planned working hours for each day of the week."""

    monday: Decimal = ZERO
    tuesday: Decimal = ZERO
    wednesday: Decimal = ZERO
    thursday: Decimal = ZERO
    friday: Decimal = ZERO
    saturday: Decimal = ZERO
    sunday: Decimal = ZERO

    def __post_init__(self) -> None:
        for day in WEEKDAYS:
            hours = to_decimal(getattr(self, day))
            if not ZERO <= hours <= HOURS_PER_DAY:
                raise ValidationError(f"Planned hours for {day} must be between 0 and {HOURS_PER_DAY}")
            setattr(self, day, hours)

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, object]]) -> "WeeklySchedule":
        """Build a schedule from day names; days left out plan zero hours."""
        values = values or {}
        unknown = sorted(set(values) - set(WEEKDAYS))
        if unknown:
            raise ValidationError(f"Unknown weekday(s): {', '.join(unknown)}")
        return cls(**{day: hours for day, hours in values.items() if hours is not None})

    def as_dict(self) -> Dict[str, Decimal]:
        return {day: getattr(self, day) for day in WEEKDAYS}

    def hours_on(self, day: date) -> Decimal:
        return getattr(self, WEEKDAYS[day.weekday()])

    @property
    def total_hours(self) -> Decimal:
        return sum(self.as_dict().values(), ZERO)


@dataclass
class UserPaySettings:
    """Per-user pay configuration with named defaults.

    Values are coerced to ``Decimal`` on construction so that every pay
    computation downstream works in decimal arithmetic.
    """

    hourly_rate: Decimal = ZERO
    overtime_multiplier: Decimal = Decimal("1.5")
    rounding_interval: int = 5
    pay_period_type: PayPeriodType = PayPeriodType.MONTHLY
    pay_period_end_day: int = 10
    paycheck_adjustment: Decimal = ZERO
    state: Optional[str] = None
    state_tax_rate: Optional[Decimal] = None
    filing_status: FilingStatus = FilingStatus.SINGLE
    time_zone: str = "UTC"
    weekly_schedule: WeeklySchedule = field(default_factory=WeeklySchedule)

    def __post_init__(self) -> None:
        self.hourly_rate = to_decimal(self.hourly_rate)
        self.overtime_multiplier = to_decimal(self.overtime_multiplier)
        self.paycheck_adjustment = to_decimal(self.paycheck_adjustment)
        if self.state_tax_rate is not None:
            self.state_tax_rate = to_decimal(self.state_tax_rate)
        if self.state is not None:
            self.state = self.state.strip().upper() or None
        if not isinstance(self.weekly_schedule, WeeklySchedule):
            self.weekly_schedule = WeeklySchedule.from_dict(self.weekly_schedule)
        try:
            self.pay_period_type = PayPeriodType(self.pay_period_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown pay period type: {self.pay_period_type!r}") from exc
        try:
            self.filing_status = FilingStatus(self.filing_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown filing status: {self.filing_status!r}") from exc

        if not ZERO <= self.hourly_rate < MAX_HOURLY_RATE:
            raise ValidationError(f"Hourly rate must be non-negative and below {MAX_HOURLY_RATE}")
        if not 1 <= self.overtime_multiplier < MAX_OVERTIME_MULTIPLIER:
            raise ValidationError(f"Overtime multiplier must be at least 1 and below {MAX_OVERTIME_MULTIPLIER}")
        if abs(self.paycheck_adjustment) >= MAX_ADJUSTMENT:
            raise ValidationError(f"Paycheck adjustment must be below {MAX_ADJUSTMENT} in magnitude")
        if self.rounding_interval not in ROUNDING_INTERVALS:
            raise ValidationError(f"Rounding interval must be one of {ROUNDING_INTERVALS}")
        if not 1 <= self.pay_period_end_day <= 31:
            raise ValidationError("Pay period end day must be between 1 and 31")
        if self.state is not None and len(self.state) != 2:
            raise ValidationError("State must be a two-letter code")
        if self.state_tax_rate is not None and not ZERO <= self.state_tax_rate <= 1:
            raise ValidationError("State tax rate must be between 0 and 1")
        try:
            ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValidationError(f"Unknown time zone: {self.time_zone!r}") from exc

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    def localize(self, moment: datetime) -> datetime:
        """Express ``moment`` in the user's zone; naive values are taken as local wall time."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.zone)
        return moment.astimezone(self.zone)


@dataclass(frozen=True)
class PayPeriod:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class PayCalculation:
    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    regular_pay: Decimal = ZERO
    overtime_pay: Decimal = ZERO
    gross_pay: Decimal = ZERO
    federal_tax: Decimal = ZERO
    state_tax: Decimal = ZERO
    fica: Decimal = ZERO
    adjustment: Decimal = ZERO
    net_pay: Decimal = ZERO

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours

    def total_withheld(self) -> Decimal:
        return self.federal_tax + self.state_tax + self.fica
