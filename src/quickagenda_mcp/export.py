"""Share links and calendar export references for published events."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from urllib.parse import urlencode

from .backends.base import Event
from .errors import NotPublished
from .timeutil import clock_to_minutes

GOOGLE_CALENDAR_URL = "https://www.google.com/calendar/render"
FALLBACK_START_MINUTES = 9 * 60


def share_url(origin: str, share_code: str | None) -> str:
    """Public URL of the read-only share page for ``share_code``.

    Raises:
        NotPublished: If there is no share code yet.
    """
    if not share_code:
        raise NotPublished()
    return f"{origin}/s/{share_code}"


def _naive_token(event: Event, clock: str) -> str:
    minutes = clock_to_minutes(clock)
    if minutes is None:
        minutes = FALLBACK_START_MINUTES
    moment = datetime.combine(event.event_date, time()) + timedelta(minutes=minutes)
    return moment.strftime("%Y%m%dT%H%M%S")


def google_calendar_link(event: Event | None, origin: str) -> str | None:
    """Google Calendar "add event" link for a published event.

    Only the first session (in working-set order, not the earliest one) is
    exported, so multi-session events show up as that session's span. Times
    are local-naive with no zone suffix; Google places them in the viewer's
    own time zone.
    """
    if event is None or not event.share_code or not event.sessions:
        return None
    first = event.sessions[0]
    start = _naive_token(event, first.start_time)
    end = _naive_token(event, first.end_time)
    params = {
        "action": "TEMPLATE",
        "text": event.name or "Event",
        "dates": f"{start}/{end}",
        "details": share_url(origin, event.share_code),
    }
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"


def ics_download_reference(event: Event | None, base: str) -> str:
    """Server path of the event's .ics file, ``<base>/<code>.ics``.

    Raises:
        NotPublished: If the event has no share code.
    """
    if event is None or not event.share_code:
        raise NotPublished()
    return f"{base.rstrip('/')}/{event.share_code}.ics"
