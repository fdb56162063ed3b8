"""
Tests for the calendar projection.
"""

from datetime import datetime, timedelta, timezone

import pendulum

from doctorschedule.domain.calendar_projection import (
    STATUS_AVAILABLE,
    STATUS_UNAVAILABLE,
    combine,
    resolve_selection,
    to_candidate,
    to_event,
    to_events,
)
from doctorschedule.domain.models import TimeSlot

from .conftest import MONDAY, TUESDAY, make_slots


class TestForwardMap:
    """Slot -> calendar event."""

    def test_available_slot(self):
        slot = TimeSlot.create(MONDAY, "09:00", "09:30")
        event = to_event(slot)

        assert event.id == slot.id
        assert event.title == STATUS_AVAILABLE
        assert event.status_tag == STATUS_AVAILABLE
        assert event.start == datetime(2025, 6, 2, 9, 0)
        assert event.end == datetime(2025, 6, 2, 9, 30)
        assert event.slot is slot

    def test_unavailable_slot(self):
        event = to_event(TimeSlot.create(MONDAY, "09:00", "09:30", available=False))

        assert event.title == STATUS_UNAVAILABLE
        assert not event.is_available

    def test_instants_are_naive(self):
        event = to_event(TimeSlot.create(MONDAY, "23:30", "23:59"))

        assert event.start.tzinfo is None
        assert event.end.tzinfo is None
        assert (event.start.hour, event.start.minute) == (23, 30)

    def test_to_events_sorted_for_display(self):
        slots = make_slots(
            (TUESDAY, "09:00", "09:30"),
            (MONDAY, "14:00", "14:30"),
            (MONDAY, "09:00", "09:30"),
        )

        assert [event.id for event in to_events(slots)] == [
            "2025-06-02-09:00", "2025-06-02-14:00", "2025-06-03-09:00"
        ]

    def test_combine(self):
        assert combine("2025-06-10", "14:05") == pendulum.naive(2025, 6, 10, 14, 5)


class TestReverseMap:
    """Picked (start, end) -> slot candidate."""

    def test_candidate_from_naive_datetimes(self):
        candidate = to_candidate(datetime(2025, 6, 10, 14, 0), datetime(2025, 6, 10, 14, 30))

        assert (candidate.date, candidate.start_time, candidate.end_time) == (
            "2025-06-10", "14:00", "14:30"
        )
        assert candidate.id == "2025-06-10-14:00"

    def test_candidate_keeps_wall_clock_of_aware_datetimes(self):
        tz = timezone(timedelta(hours=-7))
        candidate = to_candidate(
            datetime(2025, 6, 10, 8, 15, tzinfo=tz),
            datetime(2025, 6, 10, 8, 45, tzinfo=tz),
        )

        assert candidate.start_time == "08:15"
        assert candidate.end_time == "08:45"

    def test_round_trip_through_event(self):
        slot = TimeSlot.create("2025-12-31", "07:05", "07:35")
        event = to_event(slot)

        candidate = to_candidate(event.start, event.end)

        assert (candidate.date, candidate.start_time, candidate.end_time) == (
            slot.date, slot.start_time, slot.end_time
        )


class TestResolveSelection:
    """Display adapter: selection -> create or edit flow."""

    def test_empty_range_is_new_slot(self):
        events = to_events(make_slots((MONDAY, "09:00", "09:30")))

        selection = resolve_selection(events, datetime(2025, 6, 2, 10, 0), datetime(2025, 6, 2, 10, 30))

        assert selection.is_new
        assert selection.candidate.id == "2025-06-02-10:00"

    def test_selection_on_existing_start_edits(self):
        events = to_events(make_slots((MONDAY, "09:00", "09:30")))

        selection = resolve_selection(events, datetime(2025, 6, 2, 9, 0), datetime(2025, 6, 2, 10, 0))

        assert not selection.is_new
        assert selection.event.id == "2025-06-02-09:00"

    def test_overlapping_selection_edits_first_event(self):
        events = to_events(make_slots(
            (MONDAY, "09:30", "10:00"),
            (MONDAY, "09:00", "09:30"),
        ))

        selection = resolve_selection(events, datetime(2025, 6, 2, 9, 15), datetime(2025, 6, 2, 9, 45))

        assert selection.event.id == "2025-06-02-09:00"

    def test_adjacent_selection_does_not_overlap(self):
        events = to_events(make_slots((MONDAY, "09:00", "09:30")))

        selection = resolve_selection(events, datetime(2025, 6, 2, 9, 30), datetime(2025, 6, 2, 10, 0))

        assert selection.is_new
