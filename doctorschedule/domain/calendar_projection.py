"""
Projection of time slots to and from generic calendar events.

Instants are naive local wall-clock values; nothing is converted between
timezones in either direction.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Union

import pendulum
from pendulum import DateTime

from .models import TimeSlot, parse_date, parse_time, slot_id, sort_slots

STATUS_AVAILABLE = "available"
STATUS_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CalendarEvent:
    """Display-surface event backed by a time slot."""
    id: str
    title: str
    start: DateTime
    end: DateTime
    status_tag: str
    slot: TimeSlot

    @property
    def is_available(self) -> bool:
        return self.status_tag == STATUS_AVAILABLE

    def overlaps(self, start: DateTime, end: DateTime) -> bool:
        return self.start < end and self.end > start


@dataclass(frozen=True)
class SlotCandidate:
    """Slot-creation input derived from an empty calendar selection."""
    date: str
    start_time: str
    end_time: str

    @property
    def id(self) -> str:
        return slot_id(self.date, self.start_time)


@dataclass(frozen=True)
class Selection:
    """
    Outcome of a calendar selection.

    Exactly one of ``event`` (edit an existing slot) or ``candidate``
    (create a new one) is set.
    """
    event: Optional[CalendarEvent] = None
    candidate: Optional[SlotCandidate] = None

    @property
    def is_new(self) -> bool:
        return self.event is None


def combine(date_str: str, time_str: str) -> DateTime:
    """Combine a YYYY-MM-DD date and HH:MM time into a naive instant."""
    day = parse_date(date_str)
    hour, minute = parse_time(time_str)
    return pendulum.naive(day.year, day.month, day.day, hour, minute)


def status_tag(slot: TimeSlot) -> str:
    return STATUS_AVAILABLE if slot.available else STATUS_UNAVAILABLE


def to_event(slot: TimeSlot) -> CalendarEvent:
    """Forward map: slot -> calendar event."""
    tag = status_tag(slot)
    return CalendarEvent(
        id=slot.id,
        title=tag,
        start=combine(slot.date, slot.start_time),
        end=combine(slot.date, slot.end_time),
        status_tag=tag,
        slot=slot,
    )


def to_events(slots: Iterable[TimeSlot]) -> List[CalendarEvent]:
    """Map a collection of slots to events in display order."""
    return [to_event(slot) for slot in sort_slots(slots)]


def _naive(value: Union[datetime, DateTime]) -> DateTime:
    """Drop any tzinfo while keeping the wall-clock reading."""
    return pendulum.naive(
        value.year, value.month, value.day, value.hour, value.minute, value.second
    )


def to_candidate(start: datetime, end: datetime) -> SlotCandidate:
    """
    Reverse map: a picked (start, end) pair -> slot-creation input.

    The date is taken from ``start``.
    """
    start_local = _naive(start)
    end_local = _naive(end)
    return SlotCandidate(
        date=start_local.format("YYYY-MM-DD"),
        start_time=start_local.format("HH:mm"),
        end_time=end_local.format("HH:mm"),
    )


def resolve_selection(
    events: Iterable[CalendarEvent],
    start: datetime,
    end: datetime
) -> Selection:
    """
    Decide whether a selection opens the edit flow or the create flow.

    A selection whose start matches an existing slot id, or that overlaps
    an existing event, edits that event. Anything else is a new slot.
    """
    candidate = to_candidate(start, end)
    ordered = sorted(events, key=lambda event: event.slot.sort_key())

    for event in ordered:
        if event.id == candidate.id:
            return Selection(event=event)

    start_local = _naive(start)
    end_local = _naive(end)
    for event in ordered:
        if event.overlaps(start_local, end_local):
            return Selection(event=event)

    return Selection(candidate=candidate)
