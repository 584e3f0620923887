from __future__ import annotations

import argparse
import dataclasses
from datetime import datetime
from pathlib import Path

from .clock import TimeClock, utc_now
from .core.config import settings as app_settings
from .core.logging import configure_logging
from .csv_io import export_time_entries
from .errors import TimepayError
from .hours import resolve_hours
from .metrics import metrics_for
from .models import WEEKDAYS, WeeklySchedule, to_hours
from .paycheck import PaycheckCalculator
from .periods import current_period, days_remaining, enumerate_periods, period_for, periods_since
from .storage import DataStore
from .time_tracking import create_time_entry, export_window, list_time_entries, timesheet_for
from .views import format_currency, format_hours, format_timesheet

DEFAULT_DATA_PATH = app_settings.data_path
DEFAULT_USER = "local"


def store_from_args(args: argparse.Namespace) -> DataStore:
    return DataStore(Path(args.data) if args.data else DEFAULT_DATA_PATH)


def parse_datetime(value: str) -> datetime:
    """ISO-8601 timestamp; values without an offset are read as the user's wall time."""
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid timestamp: {value!r}") from exc


def _local_time(args: argparse.Namespace, store: DataStore, moment: datetime) -> str:
    return store.settings_for(args.user).localize(moment).strftime("%Y-%m-%d %H:%M")


def cmd_status(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    now = utc_now()
    status = TimeClock(store, clock=utc_now).status(args.user)
    if not status.is_clocked_in:
        print("Clocked out")
        return
    settings = store.settings_for(args.user)
    hours = status.elapsed_hours(now)
    print(f"Clocked in since {_local_time(args, store, status.entry.clock_in)}")
    print(f"Elapsed: {format_hours(hours)}  Earned: {format_currency(hours * settings.hourly_rate)}")


def cmd_clock_in(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    entry = TimeClock(store, clock=utc_now).clock_in(args.user, store.settings_for(args.user), at=args.at)
    print(f"Clocked in at {_local_time(args, store, entry.clock_in)} (entry {entry.id})")


def cmd_clock_out(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    entry = TimeClock(store, clock=utc_now).clock_out(
        args.user, store.settings_for(args.user), at=args.at, break_minutes=args.break_minutes
    )
    print(f"Clocked out at {_local_time(args, store, entry.clock_out)} ({format_hours(resolve_hours(entry))} worked)")


def cmd_cancel(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    entry = TimeClock(store, clock=utc_now).cancel_clock_in(args.user)
    print(f"Cancelled clock-in {entry.id}")


def cmd_add_entry(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    entry = create_time_entry(
        store,
        args.user,
        store.settings_for(args.user),
        clock_in=args.clock_in,
        clock_out=args.clock_out,
        notes=args.notes,
        now=utc_now(),
    )
    print(f"Created time entry {entry.id} ({format_hours(resolve_hours(entry, utc_now()))} hours)")


def cmd_configure(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    fields = (
        "hourly_rate",
        "overtime_multiplier",
        "rounding_interval",
        "pay_period_type",
        "pay_period_end_day",
        "paycheck_adjustment",
        "state",
        "state_tax_rate",
        "filing_status",
        "time_zone",
    )
    changes = {name: getattr(args, name) for name in fields if getattr(args, name) is not None}
    settings = dataclasses.replace(store.settings_for(args.user), **changes)
    store.save_settings(args.user, settings)
    for name in fields:
        value = getattr(settings, name)
        print(f"{name}: {getattr(value, 'value', value)}")
    print(f"weekly_schedule: {format_hours(settings.weekly_schedule.total_hours)} planned")


def cmd_periods(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    settings = store.settings_for(args.user)
    now = utc_now()
    if args.count is not None:
        periods = enumerate_periods(settings, now, args.count)
    else:
        periods = periods_since(settings, now, store.earliest_clock_in(args.user))
    current = current_period(settings, now)
    for period in periods:
        marker = f"  (current, {days_remaining(period, now)} days left)" if period == current else ""
        print(f"{period.start.date().isoformat()} - {period.end.date().isoformat()}{marker}")


def cmd_timesheet(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    settings = store.settings_for(args.user)
    now = utc_now()
    period = period_for(settings, args.anchor) if args.anchor else current_period(settings, now)
    timesheet = timesheet_for(store, args.user, settings, period, as_of=now, calculator=PaycheckCalculator())
    print(format_timesheet(timesheet), end="")


def cmd_estimate(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    settings = store.settings_for(args.user)
    pay = PaycheckCalculator().estimate(args.hours, settings, hourly_rate=args.rate, weeks=args.weeks)
    print(f"Regular: {to_hours(pay.regular_hours)}h  {format_currency(pay.regular_pay)}")
    print(f"Overtime: {to_hours(pay.overtime_hours)}h  {format_currency(pay.overtime_pay)}")
    print(f"Gross: {format_currency(pay.gross_pay)}")
    print(f"Federal: {format_currency(pay.federal_tax)}  State: {format_currency(pay.state_tax)}  FICA: {format_currency(pay.fica)}")
    print(f"Net: {format_currency(pay.net_pay)}")


def cmd_export(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    settings = store.settings_for(args.user)
    start, end = export_window(settings, args.start, args.end)
    entries = list_time_entries(store, args.user, start, end)
    path = Path(args.path)
    with path.open("w", newline="") as handle:
        count = export_time_entries(handle, entries, settings, start, end)
    print(f"Exported {count} entries to {path}")


def cmd_schedule(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    settings = store.settings_for(args.user)
    planned = {day: getattr(args, day) for day in WEEKDAYS}
    if any(hours is not None for hours in planned.values()):
        schedule = WeeklySchedule.from_dict(planned)
        settings = dataclasses.replace(settings, weekly_schedule=schedule)
        store.save_settings(args.user, settings)
    for day, hours in settings.weekly_schedule.as_dict().items():
        print(f"{day}: {format_hours(hours)}")
    print(f"total: {format_hours(settings.weekly_schedule.total_hours)}")


def cmd_metrics(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    metrics = metrics_for(store, args.user, store.settings_for(args.user), utc_now())
    period = metrics.period
    print(f"Pay Period: {period.start:%Y-%m-%d} - {period.end:%Y-%m-%d}")
    print(
        f"Hours: {format_hours(metrics.total_hours)} of {format_hours(metrics.scheduled_hours)} scheduled"
        f"  ({metrics.completed_entries} entries, {metrics.days_worked} days)"
    )
    print(f"Average per day: {format_hours(metrics.average_hours_per_day)}")
    print(f"Gross: {format_currency(metrics.pay.gross_pay)}  Net: {format_currency(metrics.pay.net_pay)}")
    clock_in = metrics.average_clock_in or "-"
    clock_out = metrics.average_clock_out or "-"
    print(f"Average clock-in: {clock_in}  Average clock-out: {clock_out}")
    print(f"Last 30 days: {format_hours(metrics.recent_hours)} over {metrics.recent_entries} entries")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Time clock and pay CLI")
    parser.add_argument("--data", help="JSON store path (defaults to TIMEPAY_DATA_PATH)")
    parser.add_argument("--user", default=DEFAULT_USER, help="User the command acts for")
    parser.add_argument("--verbose", action="store_true", help="Emit info-level log events")
    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show whether the user is clocked in")
    status.set_defaults(func=cmd_status)

    clock_in = sub.add_parser("clock-in", help="Start a time entry")
    clock_in.add_argument("--at", type=parse_datetime, help="Clock-in time (defaults to now)")
    clock_in.set_defaults(func=cmd_clock_in)

    clock_out = sub.add_parser("clock-out", help="Close the open time entry")
    clock_out.add_argument("--at", type=parse_datetime, help="Clock-out time (defaults to now)")
    clock_out.add_argument("--break-minutes", type=int)
    clock_out.set_defaults(func=cmd_clock_out)

    cancel = sub.add_parser("cancel", help="Discard the open time entry")
    cancel.set_defaults(func=cmd_cancel)

    add_entry = sub.add_parser("add-entry", help="Record a manual time entry")
    add_entry.add_argument("clock_in", type=parse_datetime)
    add_entry.add_argument("clock_out", type=parse_datetime)
    add_entry.add_argument("--notes")
    add_entry.set_defaults(func=cmd_add_entry)

    configure = sub.add_parser("configure", help="Update pay settings")
    configure.add_argument("--hourly-rate", dest="hourly_rate")
    configure.add_argument("--overtime-multiplier", dest="overtime_multiplier")
    configure.add_argument("--rounding-interval", dest="rounding_interval", type=int)
    configure.add_argument("--pay-period-type", dest="pay_period_type", choices=["weekly", "monthly"])
    configure.add_argument("--pay-period-end-day", dest="pay_period_end_day", type=int)
    configure.add_argument("--paycheck-adjustment", dest="paycheck_adjustment")
    configure.add_argument("--state")
    configure.add_argument("--state-tax-rate", dest="state_tax_rate")
    configure.add_argument("--filing-status", dest="filing_status", choices=["single", "married"])
    configure.add_argument("--time-zone", dest="time_zone")
    configure.set_defaults(func=cmd_configure)

    periods = sub.add_parser("periods", help="List pay periods, newest first")
    periods.add_argument("--count", type=int)
    periods.set_defaults(func=cmd_periods)

    timesheet = sub.add_parser("timesheet", help="Render the timesheet for a pay period")
    timesheet.add_argument("--anchor", type=parse_datetime, help="Any moment inside the period (defaults to now)")
    timesheet.set_defaults(func=cmd_timesheet)

    estimate = sub.add_parser("estimate", help="What-if paycheck for a number of hours")
    estimate.add_argument("hours")
    estimate.add_argument("--rate")
    estimate.add_argument("--weeks", type=int, default=1)
    estimate.set_defaults(func=cmd_estimate)

    export = sub.add_parser("export", help="Export entries to CSV")
    export.add_argument("path")
    export.add_argument("--start", type=parse_datetime)
    export.add_argument("--end", type=parse_datetime)
    export.set_defaults(func=cmd_export)

    schedule = sub.add_parser("schedule", help="Show or replace the planned hours per weekday")
    for day in WEEKDAYS:
        schedule.add_argument(f"--{day}", help=f"Planned hours on {day.capitalize()} (0-24)")
    schedule.set_defaults(func=cmd_schedule)

    metrics = sub.add_parser("metrics", help="Summarize the current pay period and the last 30 days")
    metrics.set_defaults(func=cmd_metrics)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(app_settings.log_level if args.verbose else "WARNING", json_logs=app_settings.log_json)
    try:
        args.func(args)
    except TimepayError as exc:
        parser.exit(1, f"error: {exc.message}\n")


if __name__ == "__main__":
    main()
