"""
Domain layer - Pure business logic without external dependencies.
"""

from .calendar_projection import CalendarEvent, Selection, SlotCandidate, resolve_selection, to_candidate, to_event
from .models import DailyTemplate, DateRange, TimeSlot, slot_id, sort_slots
from .range_scheduler import BulkRangeScheduler, RangePlan, is_weekend, iter_days

__all__ = [
    "BulkRangeScheduler",
    "CalendarEvent",
    "DailyTemplate",
    "DateRange",
    "RangePlan",
    "Selection",
    "SlotCandidate",
    "TimeSlot",
    "is_weekend",
    "iter_days",
    "resolve_selection",
    "slot_id",
    "sort_slots",
    "to_candidate",
    "to_event",
]
