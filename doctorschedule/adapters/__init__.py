"""
Adapters layer - Backing stores for slot records.
"""

from .http_backend import HttpSlotBackend
from .json_backend import JsonFileSlotBackend
from .mock_backend import MockSlotBackend, generate_demo_slots
from .records import SlotRecord, parse_records, record_to_slot, slot_to_record

__all__ = [
    "HttpSlotBackend",
    "JsonFileSlotBackend",
    "MockSlotBackend",
    "SlotRecord",
    "generate_demo_slots",
    "parse_records",
    "record_to_slot",
    "slot_to_record",
]
