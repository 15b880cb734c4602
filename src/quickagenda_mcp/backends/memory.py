"""In-process event store, for local use without an API server."""

from __future__ import annotations

import copy
import logging
import secrets
import string
import uuid
from typing import Any

from ..errors import CollaboratorFailure, EventNotFound
from ..timeutil import clock_to_minutes, parse_event_date
from .base import event_from_record

logger = logging.getLogger("quickagenda-mcp")

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


class MemoryEventStore:
    """Event store backed by a dict keyed by share code.

    Session times are stored as ISO local datetimes on the event date, the
    same shape the API server returns.
    """

    def __init__(self) -> None:
        self._events: dict[str, dict[str, Any]] = {}

    def _new_code(self) -> str:
        while True:
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code not in self._events:
                return code

    @staticmethod
    def _to_iso(event_date: str, clock: str) -> str:
        minutes = clock_to_minutes(clock)
        if minutes is None:
            raise CollaboratorFailure(f"Invalid time value: {clock!r}")
        if minutes == 24 * 60:  # no 24:00 within an ISO date
            minutes -= 1
        return f"{event_date}T{minutes // 60:02d}:{minutes % 60:02d}:00"

    def _lookup(self, share_code: str) -> dict[str, Any]:
        record = self._events.get(share_code)
        if record is None:
            raise EventNotFound(share_code)
        return record

    async def create_event(self, payload: dict[str, Any]) -> str:
        name = payload.get("name")
        sessions = payload.get("sessions") or []
        if not name or not sessions:
            raise CollaboratorFailure("Event name and at least one session are required")
        try:
            event_date = parse_event_date(payload.get("eventDate") or "").isoformat()
        except ValueError as e:
            raise CollaboratorFailure(str(e)) from e

        code = self._new_code()
        self._events[code] = {
            "name": name,
            "eventDate": event_date,
            "shareCode": code,
            "sessions": [
                {
                    "id": str(uuid.uuid4()),
                    "title": s["title"],
                    "startTime": self._to_iso(event_date, s["start"]),
                    "endTime": self._to_iso(event_date, s["end"]),
                    "location": s.get("location", ""),
                }
                for s in sessions
            ],
        }
        logger.info("Memory store: event '%s' created as %s", name, code)
        return code

    async def get_event(self, share_code: str) -> dict[str, Any]:
        return copy.deepcopy(self._lookup(share_code))

    async def patch_session_times(self, share_code: str, session_id: str, start: str, end: str) -> None:
        record = self._lookup(share_code)
        for session in record["sessions"]:
            if session["id"] == session_id:
                session["startTime"] = self._to_iso(record["eventDate"], start)
                session["endTime"] = self._to_iso(record["eventDate"], end)
                return
        raise CollaboratorFailure(f"Session not found: {session_id}")

    async def get_ics(self, share_code: str) -> bytes:
        from ..ics import build_ics

        return build_ics(event_from_record(self._lookup(share_code)))
