"""Build .ics files for published events."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone

from icalendar import Calendar
from icalendar import Event as VEvent

from .backends.base import Event
from .timeutil import clock_to_minutes

logger = logging.getLogger("quickagenda-mcp")

PRODID = "-//quickagenda//EN"


def _local_datetime(event: Event, clock: str) -> datetime | None:
    minutes = clock_to_minutes(clock)
    if minutes is None:
        return None
    # floating time, no tzinfo: the viewer's calendar places it in its own zone
    return datetime.combine(event.event_date, time()) + timedelta(minutes=minutes)


def build_ics(event: Event) -> bytes:
    """Return a VCALENDAR with one VEVENT per session of ``event``."""
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("x-wr-calname", event.name or "Event")

    stamp = datetime.now(timezone.utc).replace(microsecond=0)
    for session in event.sessions:
        start = _local_datetime(event, session.start_time)
        end = _local_datetime(event, session.end_time)
        if start is None or end is None:
            logger.warning("Skipping session '%s' in %s: unparseable times", session.title, event.share_code)
            continue

        vevent = VEvent()
        vevent.add("uid", f"{session.id}@quickagenda")
        vevent.add("dtstamp", stamp)
        vevent.add("summary", session.title)
        vevent.add("dtstart", start)
        vevent.add("dtend", end)
        if session.location:
            vevent.add("location", session.location)
        vevent.add("description", event.name)
        cal.add_component(vevent)

    return cal.to_ical()
