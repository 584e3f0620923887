from datetime import datetime, timezone

from timepay.rounding import round_up


def at(hour: int, minute: int, second: int = 0, day: int = 4) -> datetime:
    return datetime(2024, 3, day, hour, minute, second, tzinfo=timezone.utc)


def test_round_up_advances_to_next_interval():
    assert round_up(at(9, 2, 30), 5) == at(9, 5)
    assert round_up(at(9, 11), 15) == at(9, 15)


def test_round_up_keeps_minute_on_boundary_and_drops_seconds():
    assert round_up(at(9, 5, 42), 5) == at(9, 5)
    assert round_up(at(9, 0), 30) == at(9, 0)


def test_round_up_rolls_hour_and_day():
    assert round_up(at(9, 58), 5) == at(10, 0)
    assert round_up(at(23, 57), 5) == at(0, 0, day=5)


def test_round_up_non_positive_interval_is_identity():
    moment = at(9, 2, 30)

    assert round_up(moment, 0) == moment
    assert round_up(moment, -5) == moment


def test_round_up_is_idempotent():
    for interval in (1, 5, 10, 15, 30):
        once = round_up(at(14, 7, 13), interval)
        assert round_up(once, interval) == once
