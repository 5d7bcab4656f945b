"""Tests for the per-day event cache and display ordering."""

from datetime import date

from models.events import Event
from services.cache import EventCache, sort_events


def _event(title, day="2025-03-03", **fields):
    return Event(title=title, date=day, **fields)


class TestOrdering:
    def test_time_order_ties_break_by_title_untimed_last(self):
        events = [
            _event("B", start_time="09:00"),
            _event("A", start_time="09:00"),
            _event("C", start_time=None),
        ]
        assert [event.title for event in sort_events(events)] == ["A", "B", "C"]

    def test_priority_breaks_time_ties_before_title(self):
        events = [
            _event("A", start_time="09:00", priority=5),
            _event("B", start_time="09:00", priority=1),
            _event("C", start_time="09:00"),
        ]
        assert [event.title for event in sort_events(events)] == ["B", "A", "C"]

    def test_priority_order_puts_priority_first(self):
        events = [
            _event("Early", start_time="08:00", priority=3),
            _event("Late", start_time="18:00", priority=1),
            _event("None", start_time="07:00"),
        ]
        assert [event.title for event in sort_events(events, "priority")] == ["Late", "Early", "None"]


class TestEventCache:
    def test_replace_all_buckets_by_date(self, sample_events):
        cache = EventCache(sample_events + [_event("Other", day="2025-03-04")])
        assert cache.dates() == ["2025-03-03", "2025-03-04"]
        assert len(cache.get(date(2025, 3, 3))) == 2
        assert cache.get("2025-01-01") == []

    def test_replace_all_keeps_last_copy_of_an_id(self):
        first = _event("Old", id="same", day="2025-03-03")
        second = _event("New", id="same", day="2025-03-05")
        cache = EventCache([first, second])
        assert len(cache) == 1
        assert cache.find("same").title == "New"
        assert cache.get("2025-03-03") == []

    def test_merge_optimistic_moves_between_days(self, sample_event):
        cache = EventCache([sample_event])
        moved = sample_event.model_copy(update={"date": "2025-03-09"})
        cache.merge_optimistic([moved])
        assert cache.get("2025-03-03") == []
        assert [event.id for event in cache.get("2025-03-09")] == [sample_event.id]
        assert "2025-03-03" not in cache.dates()

    def test_merge_then_refetch_leaves_one_copy(self, sample_event):
        cache = EventCache()
        cache.merge_optimistic([sample_event])
        cache.replace_all([sample_event])
        cache.merge_optimistic([sample_event])
        assert len(cache) == 1

    def test_remove_counts_present_ids(self, sample_events):
        cache = EventCache(sample_events)
        assert cache.remove(["evt-1", "missing"]) == 1
        assert "evt-1" not in cache
        assert "evt-2" in cache

    def test_events_in_range_includes_empty_days(self, sample_events):
        cache = EventCache(sample_events)
        overview = cache.events_in_range(date(2025, 3, 4), date(2025, 3, 2))
        assert list(overview) == ["2025-03-02", "2025-03-03", "2025-03-04"]
        assert len(overview["2025-03-03"]) == 2
        assert overview["2025-03-02"] == []
