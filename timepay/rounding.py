from __future__ import annotations

from datetime import datetime, timedelta


def round_up(moment: datetime, interval_minutes: int = 5) -> datetime:
    """Round ``moment`` up to the next ``interval_minutes`` boundary.

    A moment whose minute is already on a boundary keeps that minute, so
    clocking in at exactly 8:05 stays 8:05. Seconds and microseconds are
    always dropped. A non-positive interval disables rounding.
    """
    if interval_minutes <= 0:
        return moment
    remainder = moment.minute % interval_minutes
    rounded = moment.replace(second=0, microsecond=0)
    if remainder:
        rounded += timedelta(minutes=interval_minutes - remainder)
    return rounded
