"""
Bulk range scheduling - expands a daily template over a date range.

Pure domain logic: no I/O and no knowledge of where slots are stored.
The store uses the resulting plan to evict the whole range and install
the generated slots in its place.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterator, List, Sequence

from pendulum import Date

from .exceptions import InvalidRangeError
from .models import DailyTemplate, DateLike, DateRange, TimeSlot, weekday_index

WEEKEND_DAYS = (0, 6)  # Sunday, Saturday


def is_weekend(day: date) -> bool:
    """Check if a date falls on Saturday or Sunday."""
    return weekday_index(day) in WEEKEND_DAYS


def iter_days(start_date: Date, end_date: Date) -> Iterator[Date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current = current.add(days=1)


@dataclass(frozen=True)
class RangePlan:
    """
    Result of a bulk scheduling run.

    ``date_range`` is the window that gets fully reset; ``slots`` are the
    slots to install in it. An empty plan (invalid range) evicts nothing.
    """
    date_range: DateRange
    slots: List[TimeSlot] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.date_range.is_valid()

    def evicts(self, slot: TimeSlot) -> bool:
        """Check whether an existing slot is superseded by this plan."""
        if self.is_empty:
            return False
        return self.date_range.contains(slot.date)


class BulkRangeScheduler:
    """
    Materializes concrete slots from daily templates across a date range.

    Algorithm:
    1. Walk every day from start to end (inclusive, ascending)
    2. Skip weekend days when weekdays_only is set
    3. Emit one slot per template for each remaining day, in template order
    """

    def __init__(self, weekend_predicate: Callable[[date], bool] = is_weekend):
        self._is_weekend = weekend_predicate

    def schedule(
        self,
        start_date: DateLike,
        end_date: DateLike,
        templates: Sequence[DailyTemplate],
        weekdays_only: bool,
        strict: bool = False
    ) -> List[TimeSlot]:
        """
        Generate the slots for a date range.

        Args:
            start_date: First day of the range (inclusive)
            end_date: Last day of the range (inclusive)
            templates: Daily windows to apply, in display order
            weekdays_only: Skip Saturdays and Sundays
            strict: Raise instead of returning an empty result for start > end

        Returns:
            Slots ordered by date, then by template order

        Raises:
            InvalidRangeError: If strict and start_date > end_date
        """
        return self.plan(
            start_date=start_date,
            end_date=end_date,
            templates=templates,
            weekdays_only=weekdays_only,
            strict=strict,
        ).slots

    def plan(
        self,
        start_date: DateLike,
        end_date: DateLike,
        templates: Sequence[DailyTemplate],
        weekdays_only: bool,
        strict: bool = False
    ) -> RangePlan:
        """Generate slots together with the window they replace."""
        date_range = DateRange.of(start_date, end_date, weekdays_only)

        if not date_range.is_valid():
            if strict:
                raise InvalidRangeError(
                    date_range.start_date.to_date_string(),
                    date_range.end_date.to_date_string(),
                )
            return RangePlan(date_range=date_range)

        slots: List[TimeSlot] = []

        for day in iter_days(date_range.start_date, date_range.end_date):
            if weekdays_only and self._is_weekend(day):
                continue

            date_str = day.to_date_string()
            for template in templates:
                slots.append(TimeSlot.create(date_str, template.start, template.end))

        return RangePlan(date_range=date_range, slots=slots)

    def apply(self, existing: Sequence[TimeSlot], plan: RangePlan) -> List[TimeSlot]:
        """
        Apply a plan to an existing collection.

        Every slot dated inside the range is dropped, including days the
        weekday filter skipped, and the generated slots are appended.
        Templates sharing a start time collapse to the last one.
        """
        if plan.is_empty:
            return list(existing)

        merged = {slot.id: slot for slot in existing if not plan.evicts(slot)}
        for slot in plan.slots:
            merged[slot.id] = slot
        return list(merged.values())

