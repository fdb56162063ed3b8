"""
Domain-specific exception hierarchy for the availability slot engine.
"""


class ScheduleError(Exception):
    """Base class for all application-level errors."""


class SlotNotFoundError(ScheduleError):
    """Raised when a mutation references a slot id that does not exist."""

    def __init__(self, slot_id: str):
        super().__init__(f"Time slot not found: {slot_id}")
        self.slot_id = slot_id


class BackingFailure(ScheduleError):
    """Raised when the backing store call fails, times out or returns bad data."""


class InvalidRangeError(ScheduleError):
    """Raised in strict mode when a date range starts after it ends."""

    def __init__(self, start_date: str, end_date: str):
        super().__init__(
            f"Invalid date range: start {start_date} is after end {end_date}"
        )
        self.start_date = start_date
        self.end_date = end_date


class InvalidInputError(ScheduleError, ValueError):
    """Raised when a date or time string handed to the store is malformed."""
