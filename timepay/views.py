from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from .models import ZERO, to_cents
from .paycheck import Timesheet

RULE = "=" * 60


def format_hours(hours: Decimal) -> str:
    """Hours as ``h:mm``."""
    minutes = int((Decimal(hours) * 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if minutes < 0 else ""
    h, m = divmod(abs(minutes), 60)
    return f"{sign}{h}:{m:02d}"


def format_currency(amount: Decimal) -> str:
    amount = to_cents(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _date(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}, {moment.year}"


def _time(moment: datetime) -> str:
    return f"{moment.hour % 12 or 12}:{moment:%M %p}"


def format_timesheet(timesheet: Timesheet) -> str:
    settings = timesheet.settings
    local = settings.localize
    period = timesheet.period
    lines = [
        "TIMESHEET",
        f"Pay Period: {_date(local(period.start))} - {_date(local(period.end))}",
        f"Hourly Rate: {format_currency(settings.hourly_rate)}/hr",
        f"Overtime Rate: {settings.overtime_multiplier.normalize():f}x",
        "",
    ]

    for week in timesheet.weeks:
        lines.append(f"Week {week.number}: {_date(local(week.span.start))} - {_date(local(week.span.end))}")
        lines.append(RULE)
        lines.append("")
        for allocation in week.allocation.entries:
            entry = allocation.entry
            clock_in = local(entry.clock_in)
            lines.append(f"{clock_in:%A}, {_date(clock_in)}")
            lines.append(f"  Clock In:  {_time(clock_in)}")
            if entry.clock_out is not None:
                lines.append(f"  Clock Out: {_time(local(entry.clock_out))}")
                lines.append(f"  Hours:     {format_hours(allocation.hours)}")
            else:
                lines.append("  Clock Out: (In Progress)")
                lines.append(f"  Hours:     {format_hours(allocation.hours)} (ongoing)")
            if entry.breaks:
                lines.append("  Breaks:")
                for item in entry.breaks:
                    lines.append(f"    - {item.break_type.value}: {item.minutes()}m")
            if entry.notes:
                lines.append(f"  Notes: {entry.notes}")
            lines.append("")

        lines.append(f"Week {week.number} Summary:")
        lines.append(f"  Total Hours: {format_hours(week.total_hours)}")
        if week.previous_period_hours > ZERO:
            lines.append(f"  Previous Period Hours: {format_hours(week.previous_period_hours)}")
        lines.append(f"  Regular Hours: {format_hours(week.pay.regular_hours)}")
        if week.pay.overtime_hours > ZERO:
            lines.append(f"  Overtime Hours: {format_hours(week.pay.overtime_hours)}")
        lines.append(f"  Gross Pay: {format_currency(week.pay.gross_pay)}")
        lines.append(f"  Net Pay: {format_currency(week.pay.net_pay)}")
        lines.append("")
        lines.append(RULE)
        lines.append("")

    totals = timesheet.totals
    lines.extend(["PAY PERIOD TOTALS", RULE, f"Total Hours: {format_hours(totals.total_hours)}"])
    lines.append(f"Regular Hours: {format_hours(totals.regular_hours)}")
    if totals.overtime_hours > ZERO:
        lines.append(f"Overtime Hours: {format_hours(totals.overtime_hours)}")
    lines.extend(
        [
            f"Gross Pay: {format_currency(totals.gross_pay)}",
            f"Federal Tax: {format_currency(totals.federal_tax)}",
            f"State Tax: {format_currency(totals.state_tax)}",
            f"FICA: {format_currency(totals.fica)}",
        ]
    )
    if totals.adjustment != ZERO:
        lines.append(f"Adjustment: {format_currency(totals.adjustment)}")
    lines.append(f"Net Pay: {format_currency(totals.net_pay)}")
    return "\n".join(lines) + "\n"
