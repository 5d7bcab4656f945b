"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.errors import AuthExpired, CalendarError  # noqa: E402
from models.events import Event, FriendMeta, PostponedEntry  # noqa: E402


class FakeApi:
    """
    In-memory calendar server recording every call in order.

    Set `failures[method] = exc` to make a method raise, or
    `failures["delete_event"] = {id: exc}` to fail deletes of specific ids.
    """

    def __init__(self, events=None, postponed=None, friends=None):
        self.events = {event.id: event for event in events or []}
        self.postponed = {entry.id: entry for entry in postponed or []}
        self.friends = friends or {}
        self.calls = []
        self.failures = {}

    def _check(self, method, item_id=None):
        failure = self.failures.get(method)
        if isinstance(failure, dict):
            failure = failure.get(item_id)
        if failure is not None:
            raise failure

    async def list_events(self, token):
        self.calls.append(("list_events", None))
        self._check("list_events")
        return list(self.events.values())

    async def list_friend_events(self, token, friend_id):
        self.calls.append(("list_friend_events", friend_id))
        self._check("list_friend_events")
        events = self.friends.get(friend_id, [])
        return list(events), FriendMeta(id=friend_id, username=f"friend-{friend_id}")

    async def create_events(self, token, events):
        self.calls.append(("create_events", [event.to_payload() for event in events]))
        self._check("create_events")
        for event in events:
            self.events[event.id] = event
        return len(events)

    async def update_event(self, token, event):
        self.calls.append(("update_event", event.to_payload()))
        self._check("update_event")
        self.events[event.id] = event
        return (event.version or 0) + 1

    async def delete_event(self, token, event_id):
        self.calls.append(("delete_event", event_id))
        self._check("delete_event", event_id)
        self.events.pop(event_id, None)

    async def list_postponed(self, token):
        self.calls.append(("list_postponed", None))
        self._check("list_postponed")
        return list(self.postponed.values())

    async def create_postponed(self, token, entries):
        self.calls.append(("create_postponed", [entry.to_payload() for entry in entries]))
        self._check("create_postponed")
        for entry in entries:
            self.postponed[entry.id] = entry
        return len(entries)

    async def delete_postponed(self, token, entry_id):
        self.calls.append(("delete_postponed", entry_id))
        self._check("delete_postponed", entry_id)
        self.postponed.pop(entry_id, None)

    async def aclose(self):
        self.calls.append(("aclose", None))

    def called(self, method):
        return [args for name, args in self.calls if name == method]


@pytest.fixture
def sample_event():
    """Sample dated event for testing."""
    return Event(
        id="evt-1",
        title="Dentist",
        date="2025-03-03",
        start_time="09:00",
        priority=2,
        note="Bring forms",
        origin_dates=["2025-03-01"],
    )


@pytest.fixture
def sample_events(sample_event):
    """Two events on the same day."""
    return [
        sample_event,
        Event(id="evt-2", title="Groceries", date="2025-03-03"),
    ]


@pytest.fixture
def sample_entry():
    """Sample postponed entry for testing."""
    return PostponedEntry(
        id="post-1",
        title="Renew passport",
        origin_dates=["2025-01-01"],
        was_postponed=True,
        postponed_view="all",
    )


@pytest.fixture
def fake_api(sample_events, sample_entry):
    return FakeApi(events=sample_events, postponed=[sample_entry])


@pytest.fixture
def auth_expired():
    return AuthExpired(401)


@pytest.fixture
def server_error():
    return CalendarError("boom")


@pytest.fixture
def make_api():
    """Factory for a FakeApi with custom contents."""
    return FakeApi
