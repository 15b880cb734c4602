"""Session model: identity, creation and time edits."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from .errors import CollaboratorFailure, ValidationFailure
from .timeutil import add_minutes, clock_to_minutes, hour_to_clock

DEFAULT_START = "09:00"
TRANSIENT_PREFIX = "tmp-"


@dataclass(frozen=True)
class TransientId:
    """Client-generated id, only meaningful before publication."""

    counter: int

    def __str__(self) -> str:
        return f"{TRANSIENT_PREFIX}{self.counter}"


@dataclass(frozen=True)
class PersistedId:
    """Server-assigned id, stable once the event is published."""

    value: str

    def __str__(self) -> str:
        return self.value


SessionId = TransientId | PersistedId


def parse_session_id(raw: str | SessionId) -> SessionId:
    """Turn the string form of an id back into its tagged variant."""
    if isinstance(raw, (TransientId, PersistedId)):
        return raw
    raw = str(raw).strip()
    if raw.startswith(TRANSIENT_PREFIX) and raw[len(TRANSIENT_PREFIX):].isdigit():
        return TransientId(int(raw[len(TRANSIENT_PREFIX):]))
    return PersistedId(raw)


@dataclass(frozen=True)
class Session:
    """A single time-boxed session within the event day."""

    id: SessionId
    title: str
    start_time: str
    end_time: str
    location: str = ""

    @property
    def is_persisted(self) -> bool:
        return isinstance(self.id, PersistedId)


def _check_order(start: str, end: str) -> None:
    start_min = clock_to_minutes(start)
    end_min = clock_to_minutes(end)
    if start_min is None or end_min is None:
        raise ValidationFailure(f"Invalid time value: {start!r} - {end!r}")
    if start_min >= end_min:
        raise ValidationFailure(f"Session must end after it starts ({start} - {end})")


def create_session(
    title: str,
    duration_minutes: int,
    session_id: SessionId,
    anchor_start: str = DEFAULT_START,
    location: str = "",
) -> Session:
    """Create a session starting at ``anchor_start`` lasting ``duration_minutes``.

    The end is computed with :func:`add_minutes`, so long durations are clamped
    to the end of the day. A session whose clamped end does not fall after its
    start is rejected.

    Raises:
        ValidationFailure: If the title is blank or the span is empty.
    """
    title = (title or "").strip()
    if not title:
        raise ValidationFailure("Session title is required")
    try:
        end = add_minutes(anchor_start, int(duration_minutes))
    except (TypeError, ValueError) as e:
        raise ValidationFailure(f"Invalid start or duration: {anchor_start!r}, {duration_minutes!r}") from e
    _check_order(anchor_start, end)
    return Session(id=session_id, title=title, start_time=anchor_start, end_time=end, location=location or "")


def set_times(session: Session, new_start: str, new_end: str) -> Session:
    """Return a copy of ``session`` with new start/end times.

    Raises:
        ValidationFailure: If ``new_start`` is not before ``new_end``.
    """
    _check_order(new_start, new_end)
    return dataclasses.replace(session, start_time=new_start, end_time=new_end)


def set_times_by_hour(session: Session, start_hour: int, end_hour: int) -> Session:
    """Hour-granularity form of :func:`set_times`. Drops sub-hour precision."""
    for hour in (start_hour, end_hour):
        if not isinstance(hour, int) or isinstance(hour, bool) or not 0 <= hour <= 24:
            raise ValidationFailure(f"Hour out of range: {hour!r}")
    return set_times(session, hour_to_clock(start_hour), hour_to_clock(end_hour))


def session_from_record(record: dict[str, Any]) -> Session:
    """Build a persisted session from a server record."""
    if not isinstance(record, dict):
        raise CollaboratorFailure(f"Malformed session record: {record!r}")
    raw_id = record.get("id")
    title = record.get("title")
    if raw_id in (None, "") or not title:
        raise CollaboratorFailure(f"Malformed session record: {record!r}")
    return Session(
        id=PersistedId(str(raw_id)),
        title=str(title),
        start_time=record.get("startTime") or "",
        end_time=record.get("endTime") or "",
        location=record.get("location") or "",
    )


def session_to_payload(session: Session) -> dict[str, str]:
    """Creation payload for one session."""
    return {
        "title": session.title,
        "start": session.start_time,
        "end": session.end_time,
        "location": session.location or "",
    }


def session_to_dict(session: Session) -> dict[str, Any]:
    """Convert a Session to a JSON-friendly dict."""
    return {
        "id": str(session.id),
        "persisted": session.is_persisted,
        "title": session.title,
        "location": session.location,
        "startTime": session.start_time,
        "endTime": session.end_time,
    }
