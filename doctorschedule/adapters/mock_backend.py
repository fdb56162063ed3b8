"""
In-memory backing store with generated demo data.

Useful for running the application without a real storage service and
for testing the store's pending/settled and failure handling.
"""

import asyncio
import logging
import random
from typing import Dict, List, Optional, Sequence

import pendulum
from pendulum import Date

from ..domain.exceptions import BackingFailure
from ..domain.models import TimeSlot
from ..domain.range_scheduler import is_weekend, iter_days
from .records import parse_records, slot_to_record

logger = logging.getLogger(__name__)

DEMO_DAYS = 7
DEMO_BLOCKS = ((9, 12), (14, 17))  # morning and afternoon clinic hours
AVAILABILITY_PROBABILITY = 0.7


def _format_time(hour: int, minute: int = 0) -> str:
    return f"{hour:02d}:{minute:02d}"


def generate_demo_slots(
    start_day: Optional[Date] = None,
    days: int = DEMO_DAYS,
    seed: Optional[int] = None,
    availability_probability: float = AVAILABILITY_PROBABILITY
) -> List[TimeSlot]:
    """
    Generate a realistic week of half-hour slots.

    Weekdays only, 09:00-12:00 and 14:00-17:00, each slot available with
    the given probability.

    Args:
        start_day: First day to generate (defaults to today)
        days: Number of calendar days to cover
        seed: Optional random seed for deterministic output
        availability_probability: Chance that a slot is bookable

    Returns:
        Slots in date and time order
    """
    rng = random.Random(seed)
    first_day = start_day or pendulum.today().date()
    last_day = first_day.add(days=days - 1)

    slots: List[TimeSlot] = []

    for day in iter_days(first_day, last_day):
        if is_weekend(day):
            continue

        date_str = day.to_date_string()
        for block_start, block_end in DEMO_BLOCKS:
            for hour in range(block_start, block_end):
                for start_minute, end_hour, end_minute in ((0, hour, 30), (30, hour + 1, 0)):
                    slots.append(
                        TimeSlot.create(
                            date_str,
                            _format_time(hour, start_minute),
                            _format_time(end_hour, end_minute),
                            available=rng.random() < availability_probability,
                        )
                    )

    return slots


class MockSlotBackend:
    """
    Mock backend that keeps slot records in memory.

    Records are stored in wire format so the same parsing path as the
    real backends is exercised.
    """

    def __init__(
        self,
        slots: Optional[Sequence[TimeSlot]] = None,
        latency_seconds: float = 0.0,
        seed: Optional[int] = None,
        start_day: Optional[Date] = None
    ):
        """
        Initialize the mock backend.

        Args:
            slots: Initial slots; demo data is generated when omitted
            latency_seconds: Simulated delay applied to every call
            seed: Random seed for demo data
            start_day: First day of generated demo data
        """
        if slots is None:
            slots = generate_demo_slots(start_day=start_day, seed=seed)

        self.latency_seconds = latency_seconds
        self.calls: List[str] = []
        self._records: Dict[str, dict] = {slot.id: slot_to_record(slot) for slot in slots}
        self._failure: Optional[str] = None
        self._stalled = False

    def fail_next(self, message: str = "Simulated storage failure") -> None:
        """Make the next call raise a BackingFailure."""
        self._failure = message

    def stall(self, stalled: bool = True) -> None:
        """Make every call hang until un-stalled (timeout testing)."""
        self._stalled = stalled

    async def _simulate(self, operation: str) -> None:
        self.calls.append(operation)
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        while self._stalled:
            await asyncio.sleep(0.01)
        if self._failure is not None:
            message, self._failure = self._failure, None
            logger.debug("Mock backend failing %s: %s", operation, message)
            raise BackingFailure(message)

    async def fetch_all(self) -> List[TimeSlot]:
        await self._simulate("fetch_all")
        return parse_records(list(self._records.values()))

    async def save_slot(self, slot: TimeSlot) -> None:
        await self._simulate("save_slot")
        self._records[slot.id] = slot_to_record(slot)

    async def delete_slot(self, slot_id: str) -> None:
        await self._simulate("delete_slot")
        self._records.pop(slot_id, None)

    async def replace_range(self, start_date: str, end_date: str, slots: Sequence[TimeSlot]) -> None:
        await self._simulate("replace_range")
        records = {
            key: record for key, record in self._records.items()
            if not start_date <= record["date"] <= end_date
        }
        for slot in slots:
            records[slot.id] = slot_to_record(slot)
        self._records = records
