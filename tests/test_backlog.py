"""Tests for the partitioned postponed backlog."""

from models.events import Partition, PostponedEntry, TransferMode
from services.backlog import PostponedBacklog


def _entry(title, partition, **fields):
    return PostponedEntry(title=title, postponed_view=partition, **fields)


class TestPostponedBacklog:
    def test_partitions_never_mix(self):
        backlog = PostponedBacklog(
            [_entry("Week task", "week"), _entry("Someday", "all"), _entry("Later", "all")]
        )
        assert [entry.title for entry in backlog.entries(Partition.WEEK)] == ["Week task"]
        assert [entry.title for entry in backlog.entries(Partition.ALL)] == ["Later", "Someday"]

    def test_missing_partition_defaults_to_all(self):
        entry = PostponedEntry.model_validate({"title": "Loose", "postponedView": None})
        assert entry.postponed_view is Partition.ALL

    def test_each_partition_keeps_its_own_state(self):
        backlog = PostponedBacklog()
        backlog.state(Partition.WEEK).sort_order = "priority"
        backlog.state(Partition.WEEK).picker.toggle("x")
        assert backlog.state(Partition.ALL).sort_order == "time"
        assert len(backlog.state(Partition.ALL).picker) == 0

    def test_selected_follows_listing_order(self):
        a = _entry("A", "week", start_time="08:00")
        b = _entry("B", "week", start_time="10:00")
        backlog = PostponedBacklog([b, a])
        picker = backlog.state("week").picker
        picker.toggle(b.id)
        picker.toggle(a.id)
        assert [entry.title for entry in backlog.selected("week")] == ["A", "B"]

    def test_refresh_prunes_vanished_selection(self):
        a = _entry("A", "all")
        b = _entry("B", "all")
        backlog = PostponedBacklog([a, b])
        backlog.state("all").picker.toggle_all([a.id, b.id])
        backlog.replace_all([b])
        assert backlog.state("all").picker.ids == [b.id]

    def test_merge_moves_entry_between_partitions(self):
        entry = _entry("A", "all", id="p1")
        backlog = PostponedBacklog([entry])
        backlog.merge_optimistic([entry.model_copy(update={"postponed_view": Partition.WEEK})])
        assert len(backlog) == 1
        assert backlog.entries("all") == []
        assert backlog.find("p1").postponed_view is Partition.WEEK

    def test_remove_and_clear(self):
        entry = _entry("A", "all", id="p1")
        backlog = PostponedBacklog([entry])
        assert backlog.remove(["p1", "nope"]) == 1
        assert "p1" not in backlog
        backlog.merge_optimistic([entry])
        backlog.clear()
        assert len(backlog) == 0

    def test_partition_mode_matches_board_mode_type(self):
        backlog = PostponedBacklog()
        assert backlog.state(Partition.WEEK).mode is TransferMode.COPY
        assert backlog.state(Partition.ALL).mode is TransferMode.COPY
