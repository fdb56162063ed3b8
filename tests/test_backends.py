"""
Tests for the backing store adapters and the wire record contract.
"""

import asyncio
import json
import time

import pendulum
import pytest
import requests

from doctorschedule.adapters.http_backend import HttpSlotBackend
from doctorschedule.adapters.json_backend import JsonFileSlotBackend
from doctorschedule.adapters.mock_backend import generate_demo_slots
from doctorschedule.adapters.records import SlotRecord, parse_records, record_to_slot, slot_to_record
from doctorschedule.domain.exceptions import BackingFailure
from doctorschedule.domain.models import TimeSlot
from doctorschedule.services.slot_store import TimeSlotStore

from .conftest import MONDAY, SATURDAY, TUESDAY, make_slots

WIRE_KEYS = {"id", "date", "startTime", "endTime", "available"}


class TestRecords:
    """Tests for the wire record shape."""

    def test_slot_to_record_shape(self):
        record = slot_to_record(TimeSlot.create(MONDAY, "09:00", "09:30", available=False))

        assert record == {
            "id": "2025-06-02-09:00",
            "date": "2025-06-02",
            "startTime": "09:00",
            "endTime": "09:30",
            "available": False,
        }

    def test_record_to_slot(self):
        slot = record_to_slot({
            "id": "2025-06-02-09:00",
            "date": "2025-06-02",
            "startTime": "09:00",
            "endTime": "09:30",
            "available": True,
        })

        assert slot == TimeSlot.create(MONDAY, "09:00", "09:30")

    @pytest.mark.parametrize("record", [
        {"id": "x", "date": "2025-06-02", "startTime": "09:00", "endTime": "09:30", "available": True},
        {"id": "2025-06-02-09:00", "date": "2025-06-02", "startTime": "09:00", "endTime": "09:30"},
        {"id": "2025-06-02-09:00", "date": "2025-06-02", "startTime": "09:00", "endTime": "09:30",
         "available": "yes"},
        {"id": "2025-06-02-09:00", "date": "2025-06-02", "startTime": "09:00", "endTime": "09:30",
         "available": True, "doctor": "house"},
        {"id": "2025-06-31-09:00", "date": "2025-06-31", "startTime": "09:00", "endTime": "09:30",
         "available": True},
        {"id": "2025-06-02- 09:00", "date": "2025-06-02", "startTime": " 09:00", "endTime": "09:30",
         "available": True},
    ])
    def test_malformed_records_are_backing_failures(self, record):
        with pytest.raises(BackingFailure):
            record_to_slot(record)

    def test_parse_records_requires_list(self):
        with pytest.raises(BackingFailure, match="Expected a list"):
            parse_records({"slots": []})

    def test_record_model_accepts_field_names(self):
        record = SlotRecord(id="2025-06-02-09:00", date=MONDAY, start_time="09:00", end_time="09:30", available=True)
        assert set(record.model_dump(by_alias=True)) == WIRE_KEYS


class TestDemoData:
    """Tests for generated demo slots."""

    def test_week_from_monday(self):
        slots = generate_demo_slots(start_day=pendulum.date(2025, 6, 2), seed=1)

        assert len(slots) == 60
        assert {slot.date for slot in slots} == {
            "2025-06-02", "2025-06-03", "2025-06-04", "2025-06-05", "2025-06-06"
        }
        monday = [slot for slot in slots if slot.date == MONDAY]
        assert monday[0].start_time == "09:00"
        assert monday[5].end_time == "12:00"
        assert monday[6].start_time == "14:00"
        assert monday[-1].end_time == "17:00"

    def test_seed_is_deterministic(self):
        first = generate_demo_slots(start_day=pendulum.date(2025, 6, 2), seed=42)
        second = generate_demo_slots(start_day=pendulum.date(2025, 6, 2), seed=42)

        assert first == second

    def test_probability_extremes(self):
        none = generate_demo_slots(start_day=pendulum.date(2025, 6, 2), availability_probability=0.0)
        every = generate_demo_slots(start_day=pendulum.date(2025, 6, 2), availability_probability=1.0)

        assert not any(slot.available for slot in none)
        assert all(slot.available for slot in every)


class TestJsonFileSlotBackend:
    """Tests for the JSON file backend."""

    def test_missing_file_is_empty(self, tmp_path):
        backend = JsonFileSlotBackend(tmp_path / "slots.json")
        assert asyncio.run(backend.fetch_all()) == []

    def test_save_replace_delete(self, tmp_path):
        path = tmp_path / "data" / "slots.json"
        backend = JsonFileSlotBackend(path)

        async def scenario():
            await backend.save_slot(TimeSlot.create(MONDAY, "09:00", "09:30"))
            await backend.save_slot(TimeSlot.create(SATURDAY, "10:00", "10:30"))
            await backend.save_slot(TimeSlot.create("2025-06-09", "10:00", "10:30"))
            await backend.replace_range(MONDAY, SATURDAY, make_slots((TUESDAY, "09:00", "09:30")))
            await backend.delete_slot("2025-06-09-10:00")
            await backend.delete_slot("unknown")
            return await backend.fetch_all()

        slots = asyncio.run(scenario())

        assert [slot.id for slot in slots] == ["2025-06-03-09:00"]
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
        assert [set(record) for record in payload] == [WIRE_KEYS]
        assert list(path.parent.glob("*.tmp")) == []

    def test_invalid_json_is_backing_failure(self, tmp_path):
        path = tmp_path / "slots.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(BackingFailure, match="Invalid JSON"):
            asyncio.run(JsonFileSlotBackend(path).fetch_all())

    def test_undecodable_file_is_reported_by_store(self, tmp_path):
        path = tmp_path / "slots.json"
        path.write_bytes(b"\xff\xfe[]")
        store = TimeSlotStore(backend=JsonFileSlotBackend(path))

        result = asyncio.run(store.fetch_all())

        assert isinstance(result.error, BackingFailure)
        assert "Invalid JSON" in store.error
        assert store.list() == []

    def test_write_past_deadline_is_abandoned(self, tmp_path):
        path = tmp_path / "slots.json"
        store = TimeSlotStore(backend=SlowJsonBackend(path), timeout_seconds=0.1)

        result = asyncio.run(store.create("2025-06-10", "14:00", "14:30"))

        assert not result.ok
        assert "did not respond" in result.message
        assert store.list() == []
        assert not path.exists()
        assert list(tmp_path.glob("*.tmp")) == []

    def test_store_reports_corrupt_file(self, tmp_path):
        path = tmp_path / "slots.json"
        path.write_text(json.dumps([{"id": "broken"}]), encoding="utf-8")
        store = TimeSlotStore(backend=JsonFileSlotBackend(path))

        result = asyncio.run(store.fetch_all())

        assert not result.ok
        assert "Malformed slot record" in store.error
        assert store.list() == []

    def test_store_persists_through_json(self, tmp_path, morning_template):
        path = tmp_path / "slots.json"

        async def scenario():
            store = TimeSlotStore(backend=JsonFileSlotBackend(path))
            await store.schedule_range(MONDAY, TUESDAY, morning_template, weekdays_only=True)
            await store.set_availability("2025-06-03-09:00", False)

            reloaded = TimeSlotStore(backend=JsonFileSlotBackend(path))
            await reloaded.fetch_all()
            return reloaded

        reloaded = asyncio.run(scenario())

        assert reloaded.get("2025-06-02-09:00").available is True
        assert reloaded.get("2025-06-03-09:00").available is False


class SlowJsonBackend(JsonFileSlotBackend):
    """JSON backend whose writes take longer than the store is willing to wait."""

    def _write(self, slots, abort=None):
        time.sleep(0.3)
        return super()._write(slots, abort)


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode()

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")

    def json(self):
        return json.loads(self.content)


class FakeSession:
    """Stands in for requests.Session and records every call."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.requests = []

    def request(self, method, url, headers=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else FakeResponse(204)


class SlowSession(FakeSession):
    """Answers every request, but only after a delay."""

    def request(self, *args, **kwargs):
        time.sleep(0.2)
        return super().request(*args, **kwargs)


class TestHttpSlotBackend:
    """Tests for the REST backend."""

    def test_fetch_all(self):
        session = FakeSession([FakeResponse(200, [slot_to_record(TimeSlot.create(MONDAY, "09:00", "09:30"))])])
        backend = HttpSlotBackend("https://clinic.example.com/api/", timeout_seconds=5, session=session)

        slots = asyncio.run(backend.fetch_all())

        assert [slot.id for slot in slots] == ["2025-06-02-09:00"]
        assert session.requests[0]["method"] == "GET"
        assert session.requests[0]["url"] == "https://clinic.example.com/api/slots"
        assert session.requests[0]["timeout"] == 5

    def test_save_slot_puts_record(self):
        session = FakeSession()
        backend = HttpSlotBackend("https://clinic.example.com/api", session=session)

        asyncio.run(backend.save_slot(TimeSlot.create(MONDAY, "09:00", "09:30")))

        call = session.requests[0]
        assert call["method"] == "PUT"
        assert call["url"] == "https://clinic.example.com/api/slots/2025-06-02-09%3A00"
        assert set(call["json"]) == WIRE_KEYS

    def test_delete_tolerates_not_found(self):
        session = FakeSession([FakeResponse(404)])
        backend = HttpSlotBackend("https://clinic.example.com/api", session=session)

        asyncio.run(backend.delete_slot("2025-06-02-09:00"))

        assert session.requests[0]["method"] == "DELETE"

    def test_replace_range_payload(self):
        session = FakeSession()
        backend = HttpSlotBackend("https://clinic.example.com/api", session=session)

        asyncio.run(backend.replace_range(MONDAY, TUESDAY, make_slots((MONDAY, "09:00", "09:30"))))

        call = session.requests[0]
        assert call["url"].endswith("/slots/replace-range")
        assert call["json"]["startDate"] == MONDAY
        assert call["json"]["endDate"] == TUESDAY
        assert len(call["json"]["slots"]) == 1

    def test_server_error_is_backing_failure(self):
        backend = HttpSlotBackend("https://clinic.example.com/api", session=FakeSession([FakeResponse(500)]))

        with pytest.raises(BackingFailure, match="500"):
            asyncio.run(backend.fetch_all())

    def test_connection_error_reaches_store_as_result(self):
        session = FakeSession(error=requests.exceptions.ConnectionError("refused"))
        store = TimeSlotStore(backend=HttpSlotBackend("https://clinic.example.com/api", session=session))

        result = asyncio.run(store.create(MONDAY, "09:00", "09:30"))

        assert not result.ok
        assert "refused" in store.error
        assert store.list() == []

    def test_request_answered_after_deadline_is_kept(self):
        session = SlowSession()
        store = TimeSlotStore(
            backend=HttpSlotBackend("https://clinic.example.com/api", session=session),
            timeout_seconds=0.05,
        )

        result = asyncio.run(store.create(MONDAY, "09:00", "09:30"))

        assert result.ok
        assert [call["method"] for call in session.requests] == ["PUT"]
        assert store.get("2025-06-02-09:00") is not None
