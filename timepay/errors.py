from __future__ import annotations


class TimepayError(Exception):
    """Base class for errors surfaced to callers of the engine."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TimepayError):
    """Malformed or out-of-range input, rejected before any state change."""


class InvalidRange(ValidationError):
    def __init__(self, message: str = "Clock out time must be after clock in time") -> None:
        super().__init__(message)


class StateConflict(TimepayError):
    """The request is valid but conflicts with the user's clock state."""


class AlreadyClockedIn(StateConflict):
    def __init__(self, message: str = "You already have an open time entry. Please clock out first.") -> None:
        super().__init__(message)


class NotClockedIn(StateConflict):
    def __init__(self, message: str = "No open time entry found") -> None:
        super().__init__(message)


class NotFound(TimepayError):
    pass
