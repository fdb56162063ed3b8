"""
REST client backing store.

Talks to a slot service exposing:

    GET    /slots                  -> list of slot records
    PUT    /slots/{id}             -> create or replace one record
    DELETE /slots/{id}             -> remove one record (404 is fine)
    POST   /slots/replace-range    -> {"startDate", "endDate", "slots": [...]}
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests

from ..domain.exceptions import BackingFailure
from ..domain.models import TimeSlot
from .records import parse_records, slot_to_record

logger = logging.getLogger(__name__)


class HttpSlotBackend:
    """
    Client for a remote slot service.

    Calls are blocking ``requests`` calls run in a worker thread so the
    store's event loop stays responsive.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the REST backend.

        Args:
            base_url: Service root, e.g. https://clinic.example.com/api
            timeout_seconds: Per-request timeout handed to requests
            session: Optional preconfigured requests session
            headers: Extra headers sent with every request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json", **(headers or {})}

    def _slot_url(self, slot_id: str) -> str:
        return f"{self.base_url}/slots/{quote(slot_id, safe='')}"

    def _request(
        self,
        method: str,
        url: str,
        payload: Any = None,
        allow_not_found: bool = False
    ) -> Any:
        """
        Perform one HTTP call.

        Raises:
            BackingFailure: On connection errors or non-2xx responses
        """
        try:
            response = self.session.request(
                method,
                url,
                headers=self.headers,
                json=payload,
                timeout=self.timeout_seconds
            )
            if allow_not_found and response.status_code == 404:
                return None
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise BackingFailure(f"{method} {url} failed: {e}") from e

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise BackingFailure(f"{method} {url} returned invalid JSON: {e}") from e

    async def _send(self, *args) -> Any:
        """
        Run one request in a worker thread.

        A request already on the wire cannot be recalled, so when the
        caller gives up the worker is still awaited and its real outcome
        is reported.
        """
        worker = asyncio.ensure_future(asyncio.to_thread(self._request, *args))
        try:
            return await asyncio.shield(worker)
        except asyncio.CancelledError:
            logger.debug("Caller gave up on %s %s; waiting for the response", args[0], args[1])
            return await worker

    def _fetch_all(self) -> List[TimeSlot]:
        data = self._request("GET", f"{self.base_url}/slots")
        return parse_records(data if data is not None else [])

    async def fetch_all(self) -> List[TimeSlot]:
        return await asyncio.to_thread(self._fetch_all)

    async def save_slot(self, slot: TimeSlot) -> None:
        await self._send("PUT", self._slot_url(slot.id), slot_to_record(slot))

    async def delete_slot(self, slot_id: str) -> None:
        await self._send("DELETE", self._slot_url(slot_id), None, True)

    async def replace_range(self, start_date: str, end_date: str, slots: Sequence[TimeSlot]) -> None:
        payload = {
            "startDate": start_date,
            "endDate": end_date,
            "slots": [slot_to_record(slot) for slot in slots],
        }
        logger.debug("Replacing %s..%s with %d slots", start_date, end_date, len(slots))
        await self._send("POST", f"{self.base_url}/slots/replace-range", payload)
