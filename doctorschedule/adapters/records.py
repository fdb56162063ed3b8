"""
Wire contract for slot records exchanged with backing stores.

A record is exactly:
    {"id": str, "date": "YYYY-MM-DD", "startTime": "HH:MM",
     "endTime": "HH:MM", "available": bool}
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator, model_validator

from ..domain.exceptions import BackingFailure
from ..domain.models import TimeSlot, parse_date, parse_time, slot_id


class SlotRecord(BaseModel):
    """Validated slot record as stored or transmitted."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    id: str
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    available: StrictBool

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        """Ensure the date is a real YYYY-MM-DD calendar date."""
        parse_date(value)
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Ensure times are HH:MM."""
        parse_time(value)
        return value

    @model_validator(mode="after")
    def validate_identity(self) -> "SlotRecord":
        """The id must be derived from date and start time."""
        expected = slot_id(self.date, self.start_time)
        if self.id != expected:
            raise ValueError(f"Record id '{self.id}' does not match '{expected}'")
        return self

    def to_slot(self) -> TimeSlot:
        return TimeSlot(
            id=self.id,
            date=self.date,
            start_time=self.start_time,
            end_time=self.end_time,
            available=self.available,
        )

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "SlotRecord":
        return cls(
            id=slot.id,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            available=slot.available,
        )


def slot_to_record(slot: TimeSlot) -> Dict[str, Any]:
    """
    Serialize a slot to its wire shape.

    Raises:
        BackingFailure: If the slot cannot be expressed as a valid record
    """
    try:
        return SlotRecord.from_slot(slot).model_dump(by_alias=True)
    except ValidationError as exc:
        raise BackingFailure(f"Cannot serialize slot {slot.id!r}: {exc}") from exc


def record_to_slot(data: Any) -> TimeSlot:
    """
    Parse one wire record.

    Raises:
        BackingFailure: If the record does not match the wire contract
    """
    try:
        return SlotRecord.model_validate(data).to_slot()
    except ValidationError as exc:
        raise BackingFailure(f"Malformed slot record {data!r}: {exc}") from exc


def parse_records(payload: Any) -> List[TimeSlot]:
    """
    Parse a list of wire records.

    Raises:
        BackingFailure: If the payload is not a list of valid records
    """
    if not isinstance(payload, list):
        raise BackingFailure(
            f"Expected a list of slot records, got {type(payload).__name__}"
        )
    return [record_to_slot(item) for item in payload]
