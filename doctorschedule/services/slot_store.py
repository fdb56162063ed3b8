"""
The time slot store - sole owner of the slot collection.

Every read and write of slots passes through ``TimeSlotStore``. Mutations
are serialized through a single writer lock so a bulk range replace and a
single-slot edit can never interleave. Backing-store calls happen before
the in-memory commit, which keeps the collection at its last known good
state whenever a call fails or times out.

Failures never escape the store: every operation returns a ``StoreResult``
carrying either a value or a ``ScheduleError``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Generic, List, Optional, Protocol, Sequence, TypeVar

from ..domain.exceptions import BackingFailure, InvalidInputError, ScheduleError, SlotNotFoundError
from ..domain.models import DailyTemplate, DateLike, DateRange, TimeSlot, parse_date, parse_time
from ..domain.range_scheduler import BulkRangeScheduler, RangePlan

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0


class SlotBackendProtocol(Protocol):
    """Protocol describing the backing store behaviour needed by the store."""

    async def fetch_all(self) -> List[TimeSlot]:
        """Return every stored slot."""

    async def save_slot(self, slot: TimeSlot) -> None:
        """Create or replace one slot."""

    async def delete_slot(self, slot_id: str) -> None:
        """Remove one slot; unknown ids are ignored."""

    async def replace_range(self, start_date: str, end_date: str, slots: Sequence[TimeSlot]) -> None:
        """Drop every slot dated inside the inclusive window and store ``slots``."""


class StoreStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SETTLED = "settled"


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a store operation: a value on success, an error otherwise."""
    value: Optional[T] = None
    error: Optional[ScheduleError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


class TimeSlotStore:
    """
    Owns the in-memory slot collection and its coarse loading status.

    ``strict_ranges`` and ``strict_deletes`` switch the silent no-op
    behaviour for inverted date ranges and unknown delete ids into
    reported errors.
    """

    def __init__(
        self,
        backend: SlotBackendProtocol,
        scheduler: Optional[BulkRangeScheduler] = None,
        timeout_seconds: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
        strict_ranges: bool = False,
        strict_deletes: bool = False,
    ) -> None:
        self._backend = backend
        self._scheduler = scheduler or BulkRangeScheduler()
        self._timeout_seconds = timeout_seconds
        self._strict_ranges = strict_ranges
        self._strict_deletes = strict_deletes

        self._slots: Dict[str, TimeSlot] = {}
        self._status = StoreStatus.IDLE
        self._error: Optional[str] = None
        self._in_flight = 0
        self._write_lock = asyncio.Lock()

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> Optional[str]:
        """Human-readable message of the most recent failure, if any."""
        return self._error

    @property
    def scheduler(self) -> BulkRangeScheduler:
        return self._scheduler

    def list(self) -> List[TimeSlot]:
        """Snapshot of the committed collection, in no particular order."""
        return list(self._slots.values())

    def get(self, slot_id: str) -> Optional[TimeSlot]:
        return self._slots.get(slot_id)

    async def fetch_all(self) -> StoreResult[List[TimeSlot]]:
        """Replace the collection with a full refresh from the backing store."""

        async def operation() -> List[TimeSlot]:
            slots = await self._call(self._backend.fetch_all())
            self._slots = {slot.id: slot for slot in slots}
            logger.info("Loaded %d time slots", len(self._slots))
            return self.list()

        return await self._run("fetch", operation)

    async def create(self, date: str, start_time: str, end_time: str) -> StoreResult[TimeSlot]:
        """
        Create an available slot; an existing slot with the same id is replaced.
        """

        async def operation() -> TimeSlot:
            date_str = self._validate_slot_input(date, start_time, end_time)
            slot = TimeSlot.create(date_str, start_time, end_time)
            await self._call(self._backend.save_slot(slot))
            self._slots[slot.id] = slot
            logger.info("Created time slot %s (%s-%s)", slot.id, start_time, end_time)
            return slot

        return await self._run("create", operation)

    async def set_availability(self, slot_id: str, available: bool) -> StoreResult[TimeSlot]:
        """Toggle the availability flag of an existing slot."""

        async def operation() -> TimeSlot:
            current = self._slots.get(slot_id)
            if current is None:
                raise SlotNotFoundError(slot_id)

            updated = current.with_availability(available)
            await self._call(self._backend.save_slot(updated))
            self._slots[slot_id] = updated
            logger.info("Set %s available=%s", slot_id, available)
            return updated

        return await self._run("set_availability", operation)

    async def delete(self, slot_id: str, strict: Optional[bool] = None) -> StoreResult[None]:
        """
        Delete a slot.

        Unknown ids are a silent no-op unless strict mode is requested.
        """
        strict = self._strict_deletes if strict is None else strict

        async def operation() -> None:
            if slot_id not in self._slots and strict:
                raise SlotNotFoundError(slot_id)

            await self._call(self._backend.delete_slot(slot_id))
            if self._slots.pop(slot_id, None) is not None:
                logger.info("Deleted time slot %s", slot_id)

        return await self._run("delete", operation)

    async def replace_range(
        self,
        start_date: DateLike,
        end_date: DateLike,
        new_slots: Sequence[TimeSlot]
    ) -> StoreResult[List[TimeSlot]]:
        """
        Atomically drop every slot dated inside [start_date, end_date]
        and install ``new_slots`` in their place.
        """

        async def operation() -> List[TimeSlot]:
            date_range = self._parse_range(start_date, end_date)
            plan = RangePlan(date_range=date_range, slots=list(new_slots))
            if plan.is_empty:
                return []

            await self._install(plan)
            return list(plan.slots)

        return await self._run("replace_range", operation)

    async def schedule_range(
        self,
        start_date: DateLike,
        end_date: DateLike,
        templates: Sequence[DailyTemplate],
        weekdays_only: bool,
        strict: Optional[bool] = None
    ) -> StoreResult[List[TimeSlot]]:
        """
        Bulk-schedule a daily template across a date range.

        The whole range is reset: slots on days skipped by the weekday
        filter are removed and not recreated.
        """
        strict = self._strict_ranges if strict is None else strict

        async def operation() -> List[TimeSlot]:
            try:
                plan = self._scheduler.plan(
                    start_date=start_date,
                    end_date=end_date,
                    templates=templates,
                    weekdays_only=weekdays_only,
                    strict=strict,
                )
            except ScheduleError:
                raise
            except ValueError as exc:
                raise InvalidInputError(str(exc)) from exc

            if plan.is_empty:
                logger.info("Ignoring inverted range %s..%s", start_date, end_date)
                return []

            await self._install(plan)
            return list(plan.slots)

        return await self._run("schedule_range", operation)

    async def _install(self, plan: RangePlan) -> None:
        if plan.is_empty:
            return

        start = plan.date_range.start_date.to_date_string()
        end = plan.date_range.end_date.to_date_string()

        await self._call(self._backend.replace_range(start, end, plan.slots))

        before = len(self._slots)
        merged = self._scheduler.apply(self.list(), plan)
        self._slots = {slot.id: slot for slot in merged}
        logger.info(
            "Replaced range %s..%s: %d slots before, %d after",
            start, end, before, len(self._slots)
        )

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """
        Await a backing call, translating timeouts and I/O errors.

        On timeout the call is cancelled and awaited until it has unwound,
        so nothing reaches the backing store after the operation settles.
        A backend that had already committed finishes normally and the
        result is kept; otherwise the timeout is reported.
        """
        task = asyncio.ensure_future(awaitable)
        try:
            done, _ = await asyncio.wait({task}, timeout=self._timeout_seconds or None)
            if not done:
                task.cancel()
                await asyncio.wait({task})
                if task.cancelled():
                    raise BackingFailure(
                        f"Backing store did not respond within {self._timeout_seconds:g}s"
                    )
                logger.warning("Backing call finished after the %gs deadline", self._timeout_seconds)
            return task.result()
        except OSError as exc:
            raise BackingFailure(f"Backing store unavailable: {exc}") from exc

    async def _run(self, name: str, operation: Callable[[], Awaitable[T]]) -> StoreResult[T]:
        """Run one operation under the writer lock with status bookkeeping."""
        self._in_flight += 1
        self._status = StoreStatus.PENDING

        try:
            async with self._write_lock:
                self._error = None
                value = await operation()
        except ScheduleError as exc:
            self._error = str(exc)
            logger.warning("%s failed: %s", name, exc)
            return StoreResult(error=exc)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._status = StoreStatus.SETTLED

        return StoreResult(value=value)

    @staticmethod
    def _parse_range(start_date: DateLike, end_date: DateLike) -> DateRange:
        try:
            return DateRange.of(start_date, end_date)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

    @staticmethod
    def _validate_slot_input(date: str, start_time: str, end_time: str) -> str:
        """Check input formats and return the normalized date string."""
        try:
            parse_time(start_time)
            parse_time(end_time)
            return parse_date(date).to_date_string()
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
