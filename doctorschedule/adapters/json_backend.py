"""
JSON file backing store.

The file holds a single list of slot records in wire format. Every write
rewrites the whole file through a temporary file and an atomic rename, so
a failed write never leaves a half-written collection behind.
"""

import asyncio
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..domain.exceptions import BackingFailure
from ..domain.models import TimeSlot
from .records import parse_records, slot_to_record

logger = logging.getLogger(__name__)


class JsonFileSlotBackend:
    """Backend persisting slots to a local JSON file."""

    def __init__(self, path: Path):
        """
        Initialize the JSON backend.

        Args:
            path: Location of the JSON file; created on first write
        """
        self.path = Path(path)

    def _read(self) -> List[TimeSlot]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise BackingFailure(f"Invalid JSON in {self.path}: {exc}") from exc
        except OSError as exc:
            raise BackingFailure(f"Could not read {self.path}: {exc}") from exc

        return parse_records(payload)

    def _write(self, slots: Sequence[TimeSlot], abort: Optional[threading.Event] = None) -> bool:
        """
        Rewrite the file with ``slots``.

        Returns False without touching the file when ``abort`` was set
        before the final rename.
        """
        records = [slot_to_record(slot) for slot in slots]
        directory = self.path.parent
        tmp_name = None

        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)

            if abort is not None and abort.is_set():
                os.unlink(tmp_name)
                logger.debug("Write to %s abandoned past its deadline", self.path)
                return False

            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise BackingFailure(f"Could not write {self.path}: {exc}") from exc

        logger.debug("Wrote %d slot records to %s", len(records), self.path)
        return True

    def _save(self, slot: TimeSlot, abort: Optional[threading.Event] = None) -> bool:
        slots = {existing.id: existing for existing in self._read()}
        slots[slot.id] = slot
        return self._write(list(slots.values()), abort)

    def _delete(self, slot_id: str, abort: Optional[threading.Event] = None) -> bool:
        slots = self._read()
        remaining = [slot for slot in slots if slot.id != slot_id]
        if len(remaining) == len(slots):
            return True
        return self._write(remaining, abort)

    def _replace_range(
        self,
        start_date: str,
        end_date: str,
        new_slots: Sequence[TimeSlot],
        abort: Optional[threading.Event] = None
    ) -> bool:
        slots = {
            slot.id: slot for slot in self._read()
            if not start_date <= slot.date <= end_date
        }
        for slot in new_slots:
            slots[slot.id] = slot
        return self._write(list(slots.values()), abort)

    async def _commit(self, func: Callable[..., bool], *args) -> None:
        """
        Run a write in a worker thread.

        If the caller gives up while the worker is running, the worker is
        told to skip its rename and is awaited. The cancellation only
        propagates when the file was left untouched; a write that already
        landed completes normally.
        """
        abort = threading.Event()
        worker = asyncio.ensure_future(asyncio.to_thread(func, *args, abort))
        try:
            await asyncio.shield(worker)
        except asyncio.CancelledError:
            abort.set()
            if not await worker:
                raise

    async def fetch_all(self) -> List[TimeSlot]:
        return await asyncio.to_thread(self._read)

    async def save_slot(self, slot: TimeSlot) -> None:
        await self._commit(self._save, slot)

    async def delete_slot(self, slot_id: str) -> None:
        await self._commit(self._delete, slot_id)

    async def replace_range(self, start_date: str, end_date: str, slots: Sequence[TimeSlot]) -> None:
        await self._commit(self._replace_range, start_date, end_date, slots)
