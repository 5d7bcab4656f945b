"""Tests for the periodic and focus-triggered refresh loop."""

import asyncio

from core.errors import AuthExpired
from models.events import Event
from services.store import CalendarStore
from services.sync import SyncLoop


class TestSyncLoop:
    def test_focus_refreshes_events_and_backlog(self, fake_api):
        store = CalendarStore(fake_api, token="token")
        sync = SyncLoop(store, interval=60)
        asyncio.run(sync.focus())
        assert len(store.events) == 2
        assert len(store.backlog) == 1

    def test_start_refreshes_then_polls(self, fake_api):
        store = CalendarStore(fake_api, token="token")

        async def scenario():
            sync = SyncLoop(store, interval=0.01)
            sync.start()
            assert sync.running
            await asyncio.sleep(0.05)
            await sync.stop()
            assert not sync.running

        asyncio.run(scenario())
        assert len(fake_api.called("list_events")) >= 2
        assert len(fake_api.called("list_postponed")) == 1

    def test_logout_halts_polling(self, fake_api):
        store = CalendarStore(fake_api, token="token")
        fake_api.failures["list_events"] = AuthExpired(401)

        async def scenario():
            sync = SyncLoop(store, interval=0.01)
            result = await sync.tick()
            assert not result.ok
            sync.start()
            await asyncio.sleep(0.03)
            running = sync.running
            await sync.stop()
            return running

        assert asyncio.run(scenario()) is False
        assert store.token is None

    def test_tick_in_friend_view_fills_friend_cache_only(self, make_api, sample_events):
        api = make_api(events=sample_events, friends={"42": []})
        store = CalendarStore(api, token="token")
        sync = SyncLoop(store, interval=60)
        asyncio.run(store.fetch_events())
        asyncio.run(store.view_friend("42"))
        api.events.clear()
        api.friends["42"] = [Event(title="Friend party", date="2025-03-03")]
        api.calls.clear()

        result = asyncio.run(sync.tick())

        assert result.ok
        assert [name for name, _ in api.calls] == ["list_friend_events"]
        assert len(store.events) == 2
        assert [event.title for event in store.friend_events.get("2025-03-03")] == ["Friend party"]
