from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from .errors import ValidationError
from .models import (
    MAX_HOURLY_RATE,
    ZERO,
    PayCalculation,
    PayPeriod,
    TimeEntry,
    UserPaySettings,
    to_cents,
    to_decimal,
    to_hours,
)
from .overtime import WeekAllocation, WeeklyThresholdRule, allocate_hours, allocate_week
from .taxes import TaxCalculator, TaxResult
from .weeks import WeekSpan, partition_entries


@dataclass
class WeekSummary:
    span: WeekSpan
    allocation: WeekAllocation
    pay: PayCalculation

    @property
    def number(self) -> int:
        return self.span.number

    @property
    def total_hours(self) -> Decimal:
        return self.allocation.total_hours

    @property
    def previous_period_hours(self) -> Decimal:
        return self.allocation.previous_period_hours


@dataclass
class Timesheet:
    period: PayPeriod
    settings: UserPaySettings
    weeks: List[WeekSummary] = field(default_factory=list)
    totals: PayCalculation = field(default_factory=PayCalculation)

    @property
    def total_hours(self) -> Decimal:
        return sum((week.total_hours for week in self.weeks), ZERO)

    @property
    def entries(self):
        for week in self.weeks:
            yield from week.allocation.entries


HOURS_PER_WEEK = 168
# Money and hour figures that must add up across weeks to the period totals.
RECONCILED_FIELDS = (
    "regular_hours",
    "overtime_hours",
    "regular_pay",
    "overtime_pay",
    "gross_pay",
    "federal_tax",
    "state_tax",
    "fica",
    "adjustment",
    "net_pay",
)


def _share(amount: Decimal, part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return to_cents(amount * part / whole)


def _reconcile(week_pays: List[PayCalculation], totals: PayCalculation) -> None:
    """Move per-week rounding drift onto the last week that earned anything."""
    if not week_pays:
        return
    earning = [pay for pay in week_pays if pay.gross_pay > 0]
    target = earning[-1] if earning else week_pays[-1]
    others = [pay for pay in week_pays if pay is not target]
    for name in RECONCILED_FIELDS:
        rest = sum((getattr(pay, name) for pay in others), ZERO)
        setattr(target, name, getattr(totals, name) - rest)


class PaycheckCalculator:
    def __init__(self, tax_calculator: Optional[TaxCalculator] = None, rule: Optional[WeeklyThresholdRule] = None):
        self.tax_calculator = tax_calculator or TaxCalculator()
        self.rule = rule or WeeklyThresholdRule()

    def _taxes(self, gross: Decimal, settings: UserPaySettings) -> TaxResult:
        return self.tax_calculator.calculate(
            gross,
            pay_period_type=settings.pay_period_type,
            state=settings.state,
            state_tax_rate=settings.state_tax_rate,
            filing_status=settings.filing_status,
        )

    def _calculation(
        self,
        regular_hours: Decimal,
        overtime_hours: Decimal,
        regular_pay: Decimal,
        overtime_pay: Decimal,
        taxes: TaxResult,
        adjustment: Decimal,
    ) -> PayCalculation:
        regular_pay = to_cents(regular_pay)
        overtime_pay = to_cents(overtime_pay)
        gross = regular_pay + overtime_pay
        adjustment = to_cents(adjustment)
        return PayCalculation(
            regular_hours=to_hours(regular_hours),
            overtime_hours=to_hours(overtime_hours),
            regular_pay=regular_pay,
            overtime_pay=overtime_pay,
            gross_pay=gross,
            federal_tax=taxes.federal_tax,
            state_tax=taxes.state_tax,
            fica=taxes.fica,
            adjustment=adjustment,
            net_pay=gross - taxes.total + adjustment,
        )

    def timesheet(
        self,
        period: PayPeriod,
        entries: Iterable[TimeEntry],
        settings: UserPaySettings,
        as_of: Optional[datetime] = None,
    ) -> Timesheet:
        """Weekly breakdown and period totals for ``period``.

        Taxes are computed once on the period gross. Each week shows the
        period taxes apportioned by its share of gross plus an even slice of
        the paycheck adjustment.
        """
        weeks = partition_entries(period, entries, as_of)
        allocations = [
            allocate_week(
                week.entries,
                week.previous_period_hours,
                settings.hourly_rate,
                settings.overtime_multiplier,
                as_of=as_of,
                rule=self.rule,
            )
            for week in weeks
        ]

        regular_hours = sum((a.regular_hours for a in allocations), ZERO)
        overtime_hours = sum((a.overtime_hours for a in allocations), ZERO)
        regular_pay = sum((a.regular_pay for a in allocations), ZERO)
        overtime_pay = sum((a.overtime_pay for a in allocations), ZERO)
        period_gross = to_cents(regular_pay) + to_cents(overtime_pay)
        period_taxes = self._taxes(period_gross, settings)
        totals = self._calculation(
            regular_hours, overtime_hours, regular_pay, overtime_pay, period_taxes, settings.paycheck_adjustment
        )

        timesheet = Timesheet(period=period, settings=settings, totals=totals)
        week_pays: List[PayCalculation] = []
        weekly_adjustment = settings.paycheck_adjustment / len(weeks) if weeks else ZERO
        for week, allocation in zip(weeks, allocations):
            week_gross = to_cents(allocation.regular_pay) + to_cents(allocation.overtime_pay)
            week_taxes = TaxResult(
                federal_tax=_share(period_taxes.federal_tax, week_gross, period_gross),
                state_tax=_share(period_taxes.state_tax, week_gross, period_gross),
                social_security=_share(period_taxes.social_security, week_gross, period_gross),
                medicare=_share(period_taxes.medicare, week_gross, period_gross),
            )
            pay = self._calculation(
                allocation.regular_hours,
                allocation.overtime_hours,
                allocation.regular_pay,
                allocation.overtime_pay,
                week_taxes,
                weekly_adjustment,
            )
            week_pays.append(pay)
            timesheet.weeks.append(WeekSummary(span=week.span, allocation=allocation, pay=pay))
        _reconcile(week_pays, totals)
        return timesheet

    def estimate(
        self,
        hours: Decimal,
        settings: UserPaySettings,
        hourly_rate: Optional[Decimal] = None,
        weeks: int = 1,
    ) -> PayCalculation:
        """What-if pay for ``hours`` worked, spread evenly over ``weeks`` weeks."""
        hours = to_decimal(hours)
        if hours < 0:
            raise ValidationError("Hours must be non-negative")
        if weeks < 1:
            raise ValidationError("Weeks must be at least 1")
        rate = settings.hourly_rate if hourly_rate is None else to_decimal(hourly_rate)
        if not ZERO <= rate < MAX_HOURLY_RATE:
            raise ValidationError(f"Hourly rate must be non-negative and below {MAX_HOURLY_RATE}")
        if hours > HOURS_PER_WEEK * weeks:
            raise ValidationError(f"Hours exceed the {HOURS_PER_WEEK * weeks} hours in {weeks} week(s)")

        # Every week starts with an empty regular budget.
        ((regular, overtime),) = allocate_hours([hours / weeks], rule=self.rule)
        regular_hours = regular * weeks
        overtime_hours = overtime * weeks
        regular_pay = regular_hours * rate
        overtime_pay = overtime_hours * rate * settings.overtime_multiplier
        taxes = self._taxes(to_cents(regular_pay) + to_cents(overtime_pay), settings)
        return self._calculation(
            regular_hours, overtime_hours, regular_pay, overtime_pay, taxes, settings.paycheck_adjustment
        )
