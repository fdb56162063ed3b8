"""Shared test fixtures and helpers."""

from typing import List

import pytest

from doctorschedule.adapters.mock_backend import MockSlotBackend
from doctorschedule.domain.models import DailyTemplate, TimeSlot
from doctorschedule.services.slot_store import TimeSlotStore

MONDAY = "2025-06-02"
TUESDAY = "2025-06-03"
SATURDAY = "2025-06-07"
SUNDAY = "2025-06-08"


def make_slots(*rows: tuple) -> List[TimeSlot]:
    """Build slots from (date, start, end[, available]) tuples."""
    return [TimeSlot.create(*row) for row in rows]


@pytest.fixture
def morning_template() -> List[DailyTemplate]:
    return [DailyTemplate(start="09:00", end="09:30")]


@pytest.fixture
def backend() -> MockSlotBackend:
    return MockSlotBackend(slots=[])


@pytest.fixture
def store(backend: MockSlotBackend) -> TimeSlotStore:
    return TimeSlotStore(backend=backend, timeout_seconds=2.0)
