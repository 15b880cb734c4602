"""Base types and protocol for event persistence backends."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol, runtime_checkable

from ..errors import CollaboratorFailure
from ..sessions import Session, session_from_record
from ..timeutil import parse_event_date


@dataclass(frozen=True)
class Event:
    """A published event as returned by the persistence backend."""

    name: str
    event_date: date
    share_code: str
    sessions: tuple[Session, ...] = ()


def event_from_record(record: dict[str, Any]) -> Event:
    """Build an Event from a fetch-by-code response."""
    if not isinstance(record, dict):
        raise CollaboratorFailure(f"Malformed event record: {record!r}")
    share_code = record.get("shareCode")
    if not share_code:
        raise CollaboratorFailure("Event record has no share code")
    sessions = record.get("sessions") or []
    if not isinstance(sessions, list):
        raise CollaboratorFailure(f"Event record has malformed sessions: {sessions!r}")
    try:
        event_date = parse_event_date(record.get("eventDate") or "")
    except ValueError as e:
        raise CollaboratorFailure(f"Event record has an invalid date: {e}") from e
    return Event(
        name=record.get("name") or "",
        event_date=event_date,
        share_code=str(share_code),
        sessions=tuple(session_from_record(s) for s in sessions),
    )


@runtime_checkable
class EventStore(Protocol):
    """Protocol that all persistence backends must satisfy.

    Failures raise CollaboratorFailure; an unknown code raises EventNotFound.
    """

    async def create_event(self, payload: dict[str, Any]) -> str: ...

    async def get_event(self, share_code: str) -> dict[str, Any]: ...

    async def patch_session_times(self, share_code: str, session_id: str, start: str, end: str) -> None: ...

    async def get_ics(self, share_code: str) -> bytes: ...
