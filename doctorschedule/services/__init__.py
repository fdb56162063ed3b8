"""
Service layer - the slot store and the editor workflow on top of it.
"""

from .slot_editor import EditorMode, EditorOutcome, EditorSession, OutcomeStatus, SlotEditorWorkflow
from .slot_store import SlotBackendProtocol, StoreResult, StoreStatus, TimeSlotStore

__all__ = [
    "EditorMode",
    "EditorOutcome",
    "EditorSession",
    "OutcomeStatus",
    "SlotBackendProtocol",
    "SlotEditorWorkflow",
    "StoreResult",
    "StoreStatus",
    "TimeSlotStore",
]
