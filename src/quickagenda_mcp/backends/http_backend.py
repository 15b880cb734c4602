"""REST API backend for the QuickAgenda event server."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import CollaboratorFailure, EventNotFound

logger = logging.getLogger("quickagenda-mcp")


def _json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    """Decode a response body that must be a JSON object."""
    try:
        body = response.json()
    except ValueError as e:
        raise CollaboratorFailure(f"Failed to {what}: invalid response body") from e
    if not isinstance(body, dict):
        logger.warning("API returned a non-object body (%s): %r", what, body)
        raise CollaboratorFailure(f"Failed to {what}: invalid response body")
    return body


class HttpEventStore:
    """Event store talking to the QuickAgenda API over HTTP.

    Endpoints (relative to ``base_url``):
        POST  /events                         create, returns {"shareCode"}
        GET   /events/{code}                  event details with sessions
        PATCH /events/{code}/sessions/{id}    {"start", "end"}
        GET   /events/{code}.ics              calendar file
    """

    def __init__(self, base_url: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport)

    async def _request(self, method: str, path: str, what: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.warning("API HTTP error (%s): %s", what, e)
            raise CollaboratorFailure(f"Failed to {what}: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.warning("API request error (%s): %s", what, e)
            raise CollaboratorFailure(f"Failed to {what}: {e}") from e

    async def create_event(self, payload: dict[str, Any]) -> str:
        response = await self._request("POST", "/events", "create event", json=payload)
        body = _json_object(response, "create event")
        code = body.get("shareCode")
        if not code:
            raise CollaboratorFailure("Failed to create event: no share code returned")
        return str(code)

    async def get_event(self, share_code: str) -> dict[str, Any]:
        try:
            response = await self._request("GET", f"/events/{share_code}", "load event")
        except CollaboratorFailure as e:
            cause = e.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code == 404:
                raise EventNotFound(share_code) from cause
            raise
        return _json_object(response, "load event")

    async def patch_session_times(self, share_code: str, session_id: str, start: str, end: str) -> None:
        await self._request(
            "PATCH",
            f"/events/{share_code}/sessions/{session_id}",
            "update session times",
            json={"start": start, "end": end},
        )

    async def get_ics(self, share_code: str) -> bytes:
        response = await self._request("GET", f"/events/{share_code}.ics", "download calendar file")
        return response.content
