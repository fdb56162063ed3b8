"""
Domain models for availability slots.
"""

import re
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, List, Union

import pendulum
from pendulum import Date

DateLike = Union[str, date]

DATE_FORMAT = "YYYY-MM-DD"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Sunday first, matching the weekday numbering used throughout the engine
WEEKDAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}


def slot_id(date_str: str, start_time: str) -> str:
    """Derive the slot identity from its date and start time."""
    return f"{date_str}-{start_time}"


def parse_date(value: DateLike) -> Date:
    """
    Parse a ``YYYY-MM-DD`` string (or a date instance) into a pendulum Date.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)

    text = str(value)
    if not _DATE_PATTERN.fullmatch(text):
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")

    return pendulum.from_format(text, DATE_FORMAT).date()


def format_date(value: DateLike) -> str:
    """Format a date as ``YYYY-MM-DD``."""
    return parse_date(value).to_date_string()


def parse_time(value: str) -> tuple[int, int]:
    """
    Parse an ``HH:MM`` 24-hour wall-clock string into (hour, minute).

    Raises:
        ValueError: If the string is not a valid HH:MM time
    """
    match = _TIME_PATTERN.fullmatch(str(value))
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM (24-hour)")
    return int(match.group(1)), int(match.group(2))


def weekday_index(day: date) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6."""
    return day.isoweekday() % 7


@dataclass(frozen=True)
class TimeSlot:
    """
    A single schedulable window on a given date.

    Only ``available`` may change after creation; a new time means a new slot.
    """
    id: str
    date: str
    start_time: str
    end_time: str
    available: bool = True

    @classmethod
    def create(
        cls,
        date_str: str,
        start_time: str,
        end_time: str,
        available: bool = True
    ) -> "TimeSlot":
        """Build a slot whose id is derived from date and start time."""
        return cls(
            id=slot_id(date_str, start_time),
            date=date_str,
            start_time=start_time,
            end_time=end_time,
            available=available,
        )

    def with_availability(self, available: bool) -> "TimeSlot":
        """Return a copy with the availability flag changed."""
        return replace(self, available=available)

    def sort_key(self) -> tuple[str, str]:
        return (self.date, self.start_time)

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:MM - HH:MM (available)
        """
        weekday = WEEKDAY_NAMES[weekday_index(parse_date(self.date))]
        status = "available" if self.available else "unavailable"
        return f"{weekday}, {self.date} | {self.start_time} - {self.end_time} ({status})"


@dataclass(frozen=True)
class DailyTemplate:
    """One recurring daily window applied to every qualifying day."""
    start: str
    end: str

    @classmethod
    def parse(cls, value: str) -> "DailyTemplate":
        """
        Parse a template written as ``HH:MM-HH:MM``.

        Both times must be well-formed; their order is not checked.
        """
        message = f"Invalid time template '{value}', expected HH:MM-HH:MM"
        parts = str(value).split("-")
        if len(parts) != 2:
            raise ValueError(message)

        start, end = (part.strip() for part in parts)
        try:
            parse_time(start)
            parse_time(end)
        except ValueError as e:
            raise ValueError(message) from e
        return cls(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class DateRange:
    """Inclusive date interval for bulk scheduling."""
    start_date: Date
    end_date: Date
    weekdays_only: bool = False

    @classmethod
    def of(cls, start: DateLike, end: DateLike, weekdays_only: bool = False) -> "DateRange":
        return cls(
            start_date=parse_date(start),
            end_date=parse_date(end),
            weekdays_only=weekdays_only,
        )

    def is_valid(self) -> bool:
        return self.start_date <= self.end_date

    def contains(self, value: DateLike) -> bool:
        """Check whether a date lies inside the range, boundaries included."""
        return self.start_date <= parse_date(value) <= self.end_date


def sort_slots(slots: Iterable[TimeSlot]) -> List[TimeSlot]:
    """Sort slots by (date, start time) for display."""
    return sorted(slots, key=lambda slot: slot.sort_key())
