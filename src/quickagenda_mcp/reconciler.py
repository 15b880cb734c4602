"""Working-set owner for one event: draft sessions before publication,
server sessions after.

The reconciler is the only place session state changes. While the event is a
draft, sessions live in memory with transient ids. ``publish()`` hands them
to the persistence backend and swaps the working set for the server's list.
Published events only accept per-session time edits, which are written
through to the backend before the in-memory copy changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum

from .backends.base import Event, EventStore, event_from_record
from .errors import SessionNotFound, UnsupportedOperation, ValidationFailure
from .sessions import (
    DEFAULT_START,
    PersistedId,
    Session,
    SessionId,
    TransientId,
    create_session,
    parse_session_id,
    session_to_payload,
    set_times,
    set_times_by_hour,
)
from .timeutil import clock_to_hour, parse_event_date

logger = logging.getLogger("quickagenda-mcp")


class EventState(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass(frozen=True)
class ScheduledSession:
    """One render row: the session plus its start/end hours."""

    session: Session
    start_hour: int | None
    end_hour: int | None


class ScheduleReconciler:
    """Owns the Draft/Published state and the single working set of an event."""

    def __init__(self, store: EventStore, anchor_start: str = DEFAULT_START) -> None:
        self._store = store
        self._anchor_start = anchor_start
        self._state = EventState.DRAFT
        self._name = ""
        self._event_date: date | None = None
        self._share_code: str | None = None
        self._sessions: list[Session] = []
        self._next_counter = 1
        self._publishing = False
        self._active = True

    @classmethod
    async def load(cls, store: EventStore, share_code: str, anchor_start: str = DEFAULT_START) -> ScheduleReconciler:
        """Open an already published event by its share code.

        Raises:
            EventNotFound: If no event has this code.
            CollaboratorFailure: If the backend call fails.
        """
        event = event_from_record(await store.get_event(share_code))
        reconciler = cls(store, anchor_start)
        reconciler._apply_published(event)
        return reconciler

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> EventState:
        return self._state

    @property
    def is_published(self) -> bool:
        return self._state is EventState.PUBLISHED

    @property
    def name(self) -> str:
        return self._name

    @property
    def event_date(self) -> date | None:
        return self._event_date

    @property
    def share_code(self) -> str | None:
        return self._share_code

    @property
    def sessions(self) -> tuple[Session, ...]:
        return tuple(self._sessions)

    @property
    def event(self) -> Event | None:
        """The published event, or None while still a draft."""
        if not self.is_published or self._event_date is None or not self._share_code:
            return None
        return Event(
            name=self._name,
            event_date=self._event_date,
            share_code=self._share_code,
            sessions=tuple(self._sessions),
        )

    def render_view(self) -> tuple[ScheduledSession, ...]:
        """Working set in order, with hour fields for grid rendering."""
        return tuple(
            ScheduledSession(session=s, start_hour=clock_to_hour(s.start_time), end_hour=clock_to_hour(s.end_time))
            for s in self._sessions
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop accepting changes; results of in-flight calls are discarded."""
        self._active = False

    @property
    def closed(self) -> bool:
        return not self._active

    def _ensure_active(self) -> None:
        if not self._active:
            raise UnsupportedOperation("This schedule has been closed")

    def _apply_published(self, event: Event) -> None:
        self._name = event.name
        self._event_date = event.event_date
        self._share_code = event.share_code
        self._sessions = list(event.sessions)
        self._state = EventState.PUBLISHED

    # ------------------------------------------------------------------
    # Draft operations
    # ------------------------------------------------------------------

    def set_details(self, name: str | None = None, event_date: str | date | None = None) -> None:
        """Set the event name and/or date before publication.

        Raises:
            UnsupportedOperation: If the event is published or being published.
            ValidationFailure: If the date cannot be parsed.
        """
        self._ensure_active()
        if self.is_published:
            raise UnsupportedOperation("Event details cannot be changed after publication")
        self._ensure_not_publishing()
        if event_date is not None:
            try:
                self._event_date = parse_event_date(event_date)
            except ValueError as e:
                raise ValidationFailure(str(e)) from e
        if name is not None:
            self._name = name.strip()

    def add_session(self, title: str, duration_minutes: int, location: str = "") -> Session:
        """Append a new draft session starting at the anchor time.

        Raises:
            UnsupportedOperation: If the event is published or being published.
            ValidationFailure: If the date or title is missing.
        """
        self._ensure_active()
        if self.is_published:
            raise UnsupportedOperation(
                "Event already published. Adding sessions after publication is not supported."
            )
        self._ensure_not_publishing()
        if self._event_date is None:
            raise ValidationFailure("Set the event date before adding sessions")

        session = create_session(
            title,
            duration_minutes,
            TransientId(self._next_counter),
            anchor_start=self._anchor_start,
            location=location,
        )
        self._next_counter += 1
        self._sessions.append(session)
        logger.debug("Draft session added: %s (%s-%s)", session.title, session.start_time, session.end_time)
        return session

    def _ensure_not_publishing(self) -> None:
        if self._publishing:
            raise UnsupportedOperation("Event is being published")

    def _resolve_id(self, session_id: str | SessionId) -> SessionId:
        """Tag a string id by state: published sessions only carry server ids."""
        if isinstance(session_id, (TransientId, PersistedId)):
            return session_id
        if self.is_published:
            return PersistedId(str(session_id).strip())
        return parse_session_id(session_id)

    def _index_of(self, session_id: SessionId) -> int:
        for i, session in enumerate(self._sessions):
            if session.id == session_id:
                return i
        raise SessionNotFound(session_id)

    # ------------------------------------------------------------------
    # Time edits (both states)
    # ------------------------------------------------------------------

    async def update_session_time(self, session_id: str | SessionId, start: str, end: str) -> Session:
        """Change a session's start and end.

        Draft sessions change in place. Published sessions are patched on the
        backend first and only updated here once that call succeeds.

        Raises:
            SessionNotFound: If no session in the working set has this id.
            UnsupportedOperation: If a publish is in flight.
            ValidationFailure: If ``start`` is not before ``end``.
            CollaboratorFailure: If the backend patch fails.
        """
        self._ensure_active()
        self._ensure_not_publishing()
        sid = self._resolve_id(session_id)
        index = self._index_of(sid)
        updated = set_times(self._sessions[index], start, end)
        return await self._commit(index, updated)

    async def update_session_hours(self, session_id: str | SessionId, start_hour: int, end_hour: int) -> Session:
        """Hour-granularity form of :meth:`update_session_time`."""
        self._ensure_active()
        self._ensure_not_publishing()
        sid = self._resolve_id(session_id)
        index = self._index_of(sid)
        updated = set_times_by_hour(self._sessions[index], start_hour, end_hour)
        return await self._commit(index, updated)

    async def _commit(self, index: int, updated: Session) -> Session:
        if not self.is_published:
            self._sessions[index] = updated
            logger.debug("Draft session %s moved to %s-%s", updated.id, updated.start_time, updated.end_time)
            return updated

        share_code = self._share_code or ""
        await self._store.patch_session_times(share_code, str(updated.id), updated.start_time, updated.end_time)

        if not self._active:
            logger.warning("Discarding session update for %s: schedule closed", updated.id)
            return updated
        # the list may have been reordered or replaced while awaiting
        try:
            index = self._index_of(updated.id)
        except SessionNotFound:
            logger.warning("Discarding session update for %s: no longer in working set", updated.id)
            return updated
        self._sessions[index] = updated
        logger.info("Session %s in %s updated to %s-%s", updated.id, share_code, updated.start_time, updated.end_time)
        return updated

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    async def publish(self) -> str | None:
        """Create the event on the backend and switch to the server's sessions.

        Returns the share code, or None when the schedule was closed before
        the backend answered (the result is then discarded).

        Raises:
            UnsupportedOperation: If already published or a publish is running.
            ValidationFailure: If name, date or sessions are missing.
            CollaboratorFailure: If either backend call fails. Nothing changes.
        """
        self._ensure_active()
        if self.is_published:
            raise UnsupportedOperation("Event is already published")
        if self._publishing:
            raise UnsupportedOperation("Event is already being published")
        if not self._name or self._event_date is None:
            raise ValidationFailure("Please enter event name and date")
        if not self._sessions:
            raise ValidationFailure("Please add at least one session")

        payload = {
            "name": self._name,
            "eventDate": self._event_date.isoformat(),
            "sessions": [session_to_payload(s) for s in self._sessions],
        }
        self._publishing = True
        try:
            share_code = await self._store.create_event(payload)
            if not self._active:
                logger.warning("Discarding publish result %s: schedule closed", share_code)
                return None
            event = event_from_record(await self._store.get_event(share_code))
        finally:
            self._publishing = False

        if not self._active:
            logger.warning("Discarding publish result %s: schedule closed", share_code)
            return None
        self._apply_published(event)
        logger.info("Event '%s' published as %s with %d session(s)", self._name, share_code, len(self._sessions))
        return share_code
