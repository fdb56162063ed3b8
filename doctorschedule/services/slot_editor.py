"""
Slot editor workflow - turns user intents into store calls.

The workflow holds no slot state of its own. It decides which store
operation a user interaction maps to, gates deletions behind an explicit
confirmation and tells the edit surface when to close.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..domain.calendar_projection import CalendarEvent, Selection, resolve_selection, to_events
from ..domain.models import DailyTemplate, DateLike, TimeSlot
from .slot_store import StoreResult, TimeSlotStore

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]
CloseCallback = Callable[[], None]


class EditorMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


class OutcomeStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class EditorOutcome:
    """Result of one editor intent, ready for the UI to display."""
    status: OutcomeStatus
    slot: Optional[TimeSlot] = None
    slots: List[TimeSlot] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.DONE


@dataclass(frozen=True)
class EditorSession:
    """
    What the edit surface should show for a calendar selection.

    In create mode ``date``/``start_time``/``end_time`` describe the new
    slot; in edit mode ``slot`` is the existing one.
    """
    mode: EditorMode
    date: str
    start_time: str
    end_time: str
    slot: Optional[TimeSlot] = None

    @classmethod
    def from_selection(cls, selection: Selection) -> "EditorSession":
        if selection.event is not None:
            slot = selection.event.slot
            return cls(
                mode=EditorMode.EDIT,
                date=slot.date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                slot=slot,
            )

        candidate = selection.candidate
        return cls(
            mode=EditorMode.CREATE,
            date=candidate.date,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
        )


class SlotEditorWorkflow:
    """
    Orchestrates single-slot and bulk edits originating from the calendar.

    ``on_close`` is invoked after every successful intent so the caller
    can dismiss its edit surface; failures leave the surface open.
    """

    def __init__(self, store: TimeSlotStore, on_close: Optional[CloseCallback] = None) -> None:
        self._store = store
        self._on_close = on_close

    def events(self) -> List[CalendarEvent]:
        """Current collection as calendar events in display order."""
        return to_events(self._store.list())

    def handle_selection(self, start: datetime, end: datetime) -> EditorSession:
        """Map a calendar selection to either the create or the edit flow."""
        selection = resolve_selection(self.events(), start, end)
        session = EditorSession.from_selection(selection)
        logger.debug("Selection %s - %s opens %s flow", start, end, session.mode.value)
        return session

    async def submit(self, session: EditorSession, available: bool = True) -> EditorOutcome:
        """Save an edit surface: create in create mode, toggle in edit mode."""
        if session.mode == EditorMode.CREATE:
            return await self.request_create(session.date, session.start_time, session.end_time)
        return await self.request_availability_change(session.slot.id, available)

    async def request_create(self, date: str, start_time: str, end_time: str) -> EditorOutcome:
        result = await self._store.create(date, start_time, end_time)
        return self._finish(result, slot=result.value)

    async def request_availability_change(self, slot_id: str, available: bool) -> EditorOutcome:
        """
        Change availability of an existing slot.

        An unknown id is reported as a failure, never ignored.
        """
        result = await self._store.set_availability(slot_id, available)
        return self._finish(result, slot=result.value)

    async def request_delete(self, slot_id: str, confirm: ConfirmCallback) -> EditorOutcome:
        """
        Delete a slot after the user confirmed it.

        The store is not touched unless ``confirm`` returns True.
        """
        slot = self._store.get(slot_id)

        if not confirm(slot_id):
            logger.info("Deletion of %s cancelled by user", slot_id)
            return EditorOutcome(status=OutcomeStatus.CANCELLED, slot=slot)

        result = await self._store.delete(slot_id)
        return self._finish(result, slot=slot)

    async def request_bulk(
        self,
        start_date: DateLike,
        end_date: DateLike,
        templates: Sequence[DailyTemplate],
        weekdays_only: bool,
        strict: Optional[bool] = None
    ) -> EditorOutcome:
        """Apply a daily template over a date range (full range reset)."""
        result = await self._store.schedule_range(
            start_date, end_date, templates, weekdays_only, strict=strict
        )
        return self._finish(result, slots=result.value or [])

    def _finish(
        self,
        result: StoreResult,
        slot: Optional[TimeSlot] = None,
        slots: Optional[List[TimeSlot]] = None
    ) -> EditorOutcome:
        if not result.ok:
            return EditorOutcome(
                status=OutcomeStatus.FAILED,
                slot=slot,
                message=result.message,
            )

        if self._on_close is not None:
            self._on_close()

        return EditorOutcome(status=OutcomeStatus.DONE, slot=slot, slots=list(slots or []))
