"""Tests for the HTTP transport against a mocked server."""

import asyncio
import json

import httpx
import pytest

from core.api_client import CalendarApi
from core.errors import AuthExpired, ErrorCodes, TransientNetwork, ValidationRejected
from models.events import Event
from services.store import CalendarStore


def _api(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://calendar.test")
    return CalendarApi(base_url="http://calendar.test", client=client)


def _run(api, call):
    async def scenario():
        try:
            return await call(api)
        finally:
            await api.aclose()

    return asyncio.run(scenario())


class TestRequests:
    def test_list_events_parses_envelope(self):
        def handler(request):
            assert request.url.path == "/events"
            assert request.headers["Authorization"] == "Bearer secret"
            return httpx.Response(
                200,
                json={
                    "message": "success",
                    "data": [{"id": "e1", "title": "Standup", "date": "2025-03-03", "startTime": "09:00"}],
                },
            )

        events = _run(_api(handler), lambda api: api.list_events("secret"))
        assert [(event.id, event.start_time) for event in events] == [("e1", "09:00")]

    def test_create_events_sends_camel_case_batch(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"message": "success", "count": 1})

        event = Event(id="e1", title="Gym", date="2025-03-04", was_postponed=True, origin_dates=["2025-03-01"])
        count = _run(_api(handler), lambda api: api.create_events("secret", [event]))

        assert count == 1
        assert seen["method"] == "POST"
        [item] = seen["body"]["events"]
        assert item["wasPostponed"] is True
        assert item["originDates"] == ["2025-03-01"]
        assert item["id"] == "e1"

    def test_update_event_puts_without_id(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": "success", "version": 7})

        event = Event(id="e1", title="Gym", date="2025-03-04")
        version = _run(_api(handler), lambda api: api.update_event("secret", event))
        assert version == 7
        assert seen["path"] == "/events/e1"
        assert "id" not in seen["body"]

    def test_friend_events_return_owner(self):
        def handler(request):
            assert request.url.path == "/friends/42/events"
            return httpx.Response(
                200, json={"message": "success", "data": [], "friend": {"id": "42", "username": "sam"}}
            )

        events, friend = _run(_api(handler), lambda api: api.list_friend_events("secret", "42"))
        assert events == []
        assert friend.username == "sam"

    def test_delete_postponed_path(self):
        def handler(request):
            assert request.method == "DELETE"
            assert request.url.path == "/postponed-events/p1"
            return httpx.Response(200, json={"message": "success"})

        _run(_api(handler), lambda api: api.delete_postponed("secret", "p1"))


class TestErrorMapping:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, status):
        api = _api(lambda request: httpx.Response(status, json={"error": "expired"}))
        with pytest.raises(AuthExpired) as info:
            _run(api, lambda api: api.list_events("secret"))
        assert info.value.status_code == status

    def test_client_error_is_rejection(self):
        api = _api(lambda request: httpx.Response(400, json={"error": "Title required"}))
        with pytest.raises(ValidationRejected, match="Title required"):
            _run(api, lambda api: api.list_postponed("secret"))

    def test_non_success_body_is_rejection(self):
        api = _api(lambda request: httpx.Response(200, json={"error": "nope"}))
        with pytest.raises(ValidationRejected):
            _run(api, lambda api: api.list_events("secret"))

    def test_server_error_is_transient(self):
        api = _api(lambda request: httpx.Response(503, text="down"))
        with pytest.raises(TransientNetwork):
            _run(api, lambda api: api.list_events("secret"))

    def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientNetwork):
            _run(_api(handler), lambda api: api.delete_event("secret", "e1"))


class TestMalformedResponses:
    def test_row_missing_title_is_rejection(self):
        api = _api(
            lambda request: httpx.Response(
                200, json={"message": "success", "data": [{"id": "x", "date": "2025-01-01"}]}
            )
        )
        with pytest.raises(ValidationRejected, match="Malformed Event"):
            _run(api, lambda api: api.list_events("secret"))

    def test_malformed_postponed_row_is_rejection(self):
        api = _api(
            lambda request: httpx.Response(
                200, json={"message": "success", "data": [{"id": "p", "title": "x", "postponedView": "month"}]}
            )
        )
        with pytest.raises(ValidationRejected):
            _run(api, lambda api: api.list_postponed("secret"))

    def test_non_numeric_count_is_rejection(self):
        api = _api(lambda request: httpx.Response(201, json={"message": "success", "count": "many"}))
        event = Event(title="Gym", date="2025-03-04")
        with pytest.raises(ValidationRejected, match="Invalid count"):
            _run(api, lambda api: api.create_events("secret", [event]))

    def test_store_reports_malformed_rows_as_failure(self):
        api = _api(
            lambda request: httpx.Response(
                200, json={"message": "success", "data": [{"id": "x", "date": "2025-01-01"}]}
            )
        )
        store = CalendarStore(api, token="secret")

        async def scenario():
            try:
                return await store.fetch_events()
            finally:
                await api.aclose()

        result = asyncio.run(scenario())
        assert not result.ok
        assert result.code == ErrorCodes.VALIDATION_REJECTED
        assert store.token == "secret"
