"""Clock arithmetic for single-day schedules.

Clock values are ``HH:MM`` strings on a 24-hour scale. Values coming back
from the server may instead be ISO-8601 local datetimes
(``2025-10-29T15:00:00``); the readers below accept both and return
``None`` rather than raising on anything they cannot parse.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}(T|$)")


def _pad(n: int) -> str:
    return f"{n:02d}"


def _split_clock(value: Any) -> tuple[int, int] | None:
    """Return (hour, minute) for a clock or ISO datetime string, else None."""
    if not isinstance(value, str) or not value:
        return None
    if len(value) >= 13 and value[10] == "T":
        hour_part = value[11:13]
        minute_part = value[14:16] if len(value) >= 16 and value[13] == ":" else "00"
        if not (hour_part.isdigit() and minute_part.isdigit()):
            return None
        hour, minute = int(hour_part), int(minute_part)
    else:
        match = _CLOCK_RE.match(value.strip())
        if not match:
            return None
        hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 24 or minute > 59 or (hour == 24 and minute != 0):
        return None
    return hour, minute


def add_minutes(clock: str, minutes: int) -> str:
    """Add ``minutes`` (may be negative) to ``clock``.

    Hour and minute are clamped independently to ``[0, 23]`` and ``[0, 59]``.
    There is no wraparound into the next or previous day: ``09:00 + 900``
    gives ``23:00`` and ``23:45 + 30`` gives ``23:15``.

    Raises:
        ValueError: If ``clock`` is not a ``HH:MM`` value.
    """
    parts = _split_clock(clock)
    if parts is None:
        raise ValueError(f"Invalid clock value: {clock!r}")
    hour, minute = parts
    total = hour * 60 + minute + int(minutes)
    new_hour = total // 60
    # remainder keeps the sign of total, so underflow clamps the minute to 0
    new_minute = int(math.fmod(total, 60))
    return f"{_pad(max(0, min(23, new_hour)))}:{_pad(max(0, min(59, new_minute)))}"


def hour_to_clock(hour: int) -> str:
    """Format an integer hour as ``HH:00``."""
    return f"{_pad(int(hour))}:00"


def clock_to_hour(value: Any) -> int | None:
    """Extract the hour from ``HH:MM`` or an ISO datetime string."""
    parts = _split_clock(value)
    return parts[0] if parts else None


def clock_to_minutes(value: Any) -> int | None:
    """Minutes since midnight for ``HH:MM`` or an ISO datetime string."""
    parts = _split_clock(value)
    if parts is None:
        return None
    return parts[0] * 60 + parts[1]


def parse_event_date(value: str | date) -> date:
    """Parse an event date given as ``YYYY-MM-DD``.

    An ISO datetime (``2025-10-29T00:00:00``) is accepted too, and only its
    date part is kept. Partial strings such as ``10:30`` or ``Monday`` are
    rejected instead of being completed from today's date.

    Raises:
        ValueError: If the value is empty or not a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not str(value).strip():
        raise ValueError("Event date is required")
    text = str(value).strip()
    if not _ISO_DATE_RE.match(text):
        raise ValueError(f"Invalid event date: {value} (expected YYYY-MM-DD)")

    from dateutil.parser import isoparse

    try:
        return isoparse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid event date: {value}") from e
