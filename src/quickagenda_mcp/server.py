#!/usr/bin/env python3
"""
quickagenda-mcp: one-day event agenda MCP server.

Build an event out of time-boxed sessions, publish it, and hand out the share
link, a Google Calendar link and the .ics download. Backends: QuickAgenda
REST API (http) or an in-process store (memory).

Environment variables:
    QUICKAGENDA_CONFIG: path to quickagenda.yaml (default: /config/quickagenda.yaml)
"""

import logging
import sys
from typing import Any

from mcp.server.fastmcp import FastMCP

from .backends.base import Event, EventStore
from .config import Settings, load_config
from .errors import CollaboratorFailure, ScheduleError
from .export import google_calendar_link, ics_download_reference, share_url
from .reconciler import ScheduledSession, ScheduleReconciler
from .sessions import session_to_dict

# MCP stdio servers must never write to stdout, log to stderr only.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("quickagenda-mcp")


# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

_settings: Settings = Settings()
_store: EventStore | None = None
_reconciler: ScheduleReconciler | None = None


def _init_store(settings: Settings) -> EventStore:
    """Create the persistence backend named in the settings."""
    if settings.backend == "http":
        from .backends.http_backend import HttpEventStore
        return HttpEventStore(settings.api_base_url, timeout=settings.timeout)
    elif settings.backend == "memory":
        from .backends.memory import MemoryEventStore
        return MemoryEventStore()
    else:
        raise ValueError(f"Unknown backend type: {settings.backend}")


def _get_store() -> EventStore:
    """Get the backend. Lazy-initializes on first access."""
    global _store
    if _store is None:
        _store = _init_store(_settings)
    return _store


def _get_reconciler() -> ScheduleReconciler:
    """Get the organizer's current schedule, starting a draft if there is none."""
    global _reconciler
    if _reconciler is None:
        _reconciler = ScheduleReconciler(_get_store(), anchor_start=_settings.default_start)
    return _reconciler


def _row_to_dict(row: ScheduledSession) -> dict[str, Any]:
    """Convert a render row to a JSON-friendly dict."""
    d = session_to_dict(row.session)
    d["startHour"] = row.start_hour
    d["endHour"] = row.end_hour
    return d


def _links(event: Event | None) -> dict[str, Any]:
    return {
        "share_url": share_url(_settings.share_origin, event.share_code if event else None),
        "google_calendar": google_calendar_link(event, _settings.share_origin),
        "ics": ics_download_reference(event, _settings.ics_base),
    }


def _schedule_to_dict(reconciler: ScheduleReconciler) -> dict[str, Any]:
    return {
        "state": reconciler.state.value,
        "name": reconciler.name,
        "event_date": reconciler.event_date.isoformat() if reconciler.event_date else None,
        "share_code": reconciler.share_code,
        "sessions": [_row_to_dict(r) for r in reconciler.render_view()],
    }


# ---------------------------------------------------------------------------
# MCP Server + Tools
# ---------------------------------------------------------------------------

mcp = FastMCP("quickagenda")


@mcp.tool()
async def new_event(name: str = "", event_date: str = "") -> dict:
    """Start a new draft event, discarding the current one.

    Args:
        name: Event name (e.g. "BBQ"). Can be set later.
        event_date: Event date (e.g. "2025-10-29"). Can be set later.
    """
    global _reconciler
    if _reconciler is not None:
        _reconciler.close()
    _reconciler = None
    reconciler = _get_reconciler()
    try:
        reconciler.set_details(name=name or None, event_date=event_date or None)
    except ScheduleError as e:
        return e.to_dict()
    return _schedule_to_dict(reconciler)


@mcp.tool()
async def set_event_details(name: str = "", event_date: str = "") -> dict:
    """Set the name and/or date of the draft event. Empty values are left as they are.

    Args:
        name: Event name
        event_date: Event date (YYYY-MM-DD)
    """
    if not name and not event_date:
        return {"error": "No fields to update"}
    reconciler = _get_reconciler()
    try:
        reconciler.set_details(name=name or None, event_date=event_date or None)
    except ScheduleError as e:
        return e.to_dict()
    return _schedule_to_dict(reconciler)


@mcp.tool()
async def add_session(title: str, duration: int = 60, location: str = "") -> dict:
    """Add a session to the draft event. It starts at the default start time (09:00).

    Args:
        title: Session title (e.g. "Cake")
        duration: Length in minutes (e.g. 30, 60, 120)
        location: Where the session takes place (optional)
    """
    reconciler = _get_reconciler()
    try:
        session = reconciler.add_session(title, duration, location)
    except ScheduleError as e:
        return e.to_dict()
    return {"success": True, "session": session_to_dict(session)}


@mcp.tool()
async def update_session_time(session_id: str, start: str, end: str) -> dict:
    """Move a session. On a published event the change is saved to the server first.

    Args:
        session_id: Session ID (from get_schedule)
        start: New start time (HH:MM)
        end: New end time (HH:MM)
    """
    reconciler = _get_reconciler()
    try:
        session = await reconciler.update_session_time(session_id, start, end)
    except ScheduleError as e:
        return e.to_dict()
    return {"success": True, "session": session_to_dict(session)}


@mcp.tool()
async def update_session_hours(session_id: str, start_hour: int, end_hour: int) -> dict:
    """Move a session on the hour grid. Minutes are reset to :00.

    Args:
        session_id: Session ID (from get_schedule)
        start_hour: New start hour (0-23)
        end_hour: New end hour (1-24)
    """
    reconciler = _get_reconciler()
    try:
        session = await reconciler.update_session_hours(session_id, start_hour, end_hour)
    except ScheduleError as e:
        return e.to_dict()
    return {"success": True, "session": session_to_dict(session)}


@mcp.tool()
async def publish_event() -> dict:
    """Publish the draft event. Sessions cannot be added afterwards."""
    reconciler = _get_reconciler()
    try:
        code = await reconciler.publish()
    except ScheduleError as e:
        if isinstance(e, CollaboratorFailure):
            logger.warning("Publishing failed: %s", e)
        return e.to_dict()
    if code is None:
        return {"error": "Event was discarded while publishing"}
    result = _schedule_to_dict(reconciler)
    result["success"] = True
    result["share_url"] = share_url(_settings.share_origin, code)
    return result


@mcp.tool()
async def get_schedule() -> dict:
    """Return the current event with its sessions and their start/end hours."""
    return _schedule_to_dict(_get_reconciler())


@mcp.tool()
async def get_share_link() -> dict:
    """Return the share page URL of the published event (also the QR code content)."""
    reconciler = _get_reconciler()
    try:
        url = share_url(_settings.share_origin, reconciler.share_code)
    except ScheduleError as e:
        return e.to_dict()
    return {"share_code": reconciler.share_code, "share_url": url, "qr_text": url}


@mcp.tool()
async def get_calendar_links() -> dict:
    """Return the Google Calendar link and .ics download path of the published event."""
    try:
        return _links(_get_reconciler().event)
    except ScheduleError as e:
        return e.to_dict()


@mcp.tool()
async def get_shared_event(code: str) -> dict:
    """Load a published event by share code, as shown on its share page.

    Args:
        code: Share code (e.g. "AB12CD")
    """
    try:
        reconciler = await ScheduleReconciler.load(_get_store(), code, anchor_start=_settings.default_start)
    except ScheduleError as e:
        return e.to_dict()
    # read-only view, nothing may edit it
    reconciler.close()
    result = _schedule_to_dict(reconciler)
    result.update(_links(reconciler.event))
    return result


@mcp.tool()
async def get_ics(code: str) -> dict:
    """Download the .ics calendar file of a published event.

    Args:
        code: Share code
    """
    try:
        content = await _get_store().get_ics(code)
    except ScheduleError as e:
        return e.to_dict()
    return {"filename": f"{code}.ics", "content": content.decode("utf-8")}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Entry point for console script and python -m."""
    global _settings, _store, _reconciler

    _settings = load_config()
    _store = None
    _reconciler = None
    logger.info(
        "Backend: %s%s, share origin: %s",
        _settings.backend,
        f" ({_settings.api_base_url})" if _settings.backend == "http" else "",
        _settings.share_origin,
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
