"""
Calendar server client with lazy initialization.

Every method takes the bearer token explicitly and either returns parsed
models or raises one of the core.errors types:

    401/403             -> AuthExpired
    other 4xx, or a
    non-success body    -> ValidationRejected
    5xx, timeouts,
    connection errors   -> TransientNetwork
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from core.config import (
    API_URL,
    EVENTS_PATH,
    FRIEND_EVENTS_PATH,
    POSTPONED_PATH,
    REQUEST_TIMEOUT_SECONDS,
)
from core.errors import AuthExpired, TransientNetwork, ValidationRejected
from models.events import Event, FriendMeta, PostponedEntry

logger = logging.getLogger(__name__)


def _parse(model: type[BaseModel], raw: Any):
    """Validate one server record; a malformed record rejects the response."""
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.error("Malformed %s from server: %s", model.__name__, e)
        raise ValidationRejected(
            f"Malformed {model.__name__} in server response",
            details=[error["msg"] for error in e.errors()],
        ) from e


def _parse_rows(model: type[BaseModel], body: dict[str, Any]) -> list:
    rows = body.get("data") or []
    if not isinstance(rows, list):
        raise ValidationRejected("Expected a list in server response")
    return [_parse(model, raw) for raw in rows]


def _count(body: dict[str, Any], default: int) -> int:
    try:
        return int(body.get("count", default))
    except (TypeError, ValueError):
        raise ValidationRejected(f"Invalid count in server response: {body.get('count')!r}")


class CalendarApi:
    """Async transport for dated events and the postponed backlog."""

    def __init__(
        self,
        base_url: str = API_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, token: str, payload: dict | None = None
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = await self._client.request(method, path, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise TransientNetwork(f"Unable to reach calendar server: {e}") from e

        if response.status_code in (401, 403):
            raise AuthExpired(response.status_code)

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"message": "success", "data": body}

        if response.status_code >= 500:
            raise TransientNetwork(body.get("error") or f"Server error {response.status_code}")
        if response.status_code >= 400:
            raise ValidationRejected(body.get("error") or f"Request rejected ({response.status_code})")
        if body.get("message") != "success":
            raise ValidationRejected(body.get("error") or "Unexpected server response")
        return body

    # -------------------------------------------------------------------------
    # Dated events
    # -------------------------------------------------------------------------

    async def list_events(self, token: str) -> list[Event]:
        body = await self._request("GET", EVENTS_PATH, token)
        return _parse_rows(Event, body)

    async def list_friend_events(self, token: str, friend_id: str) -> tuple[list[Event], FriendMeta]:
        """Read-only view of a friend's calendar."""
        body = await self._request("GET", FRIEND_EVENTS_PATH.format(friend_id=friend_id), token)
        events = _parse_rows(Event, body)
        friend = body.get("friend") or {"id": friend_id, "username": friend_id}
        return events, _parse(FriendMeta, friend)

    async def create_events(self, token: str, events: list[Event]) -> int:
        """Bulk insert. Client-generated ids are authoritative."""
        body = await self._request(
            "POST", EVENTS_PATH, token, {"events": [event.to_payload() for event in events]}
        )
        return _count(body, len(events))

    async def update_event(self, token: str, event: Event) -> int | None:
        """Full-field replace of one event. Returns the new version stamp."""
        payload = event.to_payload()
        payload.pop("id", None)
        body = await self._request("PUT", f"{EVENTS_PATH}/{event.id}", token, payload)
        return body.get("version")

    async def delete_event(self, token: str, event_id: str) -> None:
        await self._request("DELETE", f"{EVENTS_PATH}/{event_id}", token)

    # -------------------------------------------------------------------------
    # Postponed backlog
    # -------------------------------------------------------------------------

    async def list_postponed(self, token: str) -> list[PostponedEntry]:
        body = await self._request("GET", POSTPONED_PATH, token)
        return _parse_rows(PostponedEntry, body)

    async def create_postponed(self, token: str, entries: list[PostponedEntry]) -> int:
        body = await self._request(
            "POST", POSTPONED_PATH, token, {"events": [entry.to_payload() for entry in entries]}
        )
        return _count(body, len(entries))

    async def delete_postponed(self, token: str, entry_id: str) -> None:
        await self._request("DELETE", f"{POSTPONED_PATH}/{entry_id}", token)


_api_client: CalendarApi | None = None


def get_api_client() -> CalendarApi:
    """Get or create the calendar server client (lazy initialization)."""
    global _api_client
    if _api_client is None:
        _api_client = CalendarApi()
    return _api_client
