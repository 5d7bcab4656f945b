"""
Postponed backlog split into 'week' and 'all' partitions.

Partitions are never merged in listings. Each keeps its own sort order,
checkbox selection and transfer target so switching between them leaks no
state.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from models.events import Partition, PostponedEntry, TransferMode
from services.cache import SortOrder, sort_events
from services.selection import Picker


@dataclass
class PartitionState:
    """UI state owned by one partition."""

    sort_order: SortOrder = "time"
    picker: Picker = field(default_factory=Picker)
    mode: TransferMode = TransferMode.COPY
    target_date: str | None = None
    target_partition: Partition | None = None


class PostponedBacklog:
    """Shelved entries, last-write-wins per id."""

    def __init__(self, entries: Iterable[PostponedEntry] | None = None):
        self._entries: dict[str, PostponedEntry] = {}
        self.states: dict[Partition, PartitionState] = {
            partition: PartitionState() for partition in Partition
        }
        if entries is not None:
            self.replace_all(entries)

    def state(self, partition: Partition) -> PartitionState:
        return self.states[Partition(partition)]

    def entries(self, partition: Partition, order: SortOrder | None = None) -> list[PostponedEntry]:
        """One partition's entries in its preferred order."""
        partition = Partition(partition)
        order = order or self.states[partition].sort_order
        return sort_events(
            (entry for entry in self._entries.values() if entry.postponed_view is partition),
            order,
        )

    def selected(self, partition: Partition) -> list[PostponedEntry]:
        """Checked entries of a partition, in listing order."""
        partition = Partition(partition)
        return self.states[partition].picker.pick(self.entries(partition))

    def replace_all(self, entries: Iterable[PostponedEntry]) -> None:
        """Swap in the result of a full refetch."""
        latest: dict[str, PostponedEntry] = {}
        for entry in entries:
            latest.pop(entry.id, None)
            latest[entry.id] = entry
        self._entries = latest
        self._prune_pickers()

    def merge_optimistic(self, entries: Iterable[PostponedEntry]) -> None:
        for entry in entries:
            self._entries.pop(entry.id, None)
            self._entries[entry.id] = entry

    def remove(self, entry_ids: Iterable[str]) -> int:
        removed = 0
        for entry_id in entry_ids:
            if self._entries.pop(entry_id, None) is not None:
                removed += 1
        self._prune_pickers()
        return removed

    def find(self, entry_id: str) -> PostponedEntry | None:
        return self._entries.get(entry_id)

    def clear(self) -> None:
        self._entries = {}
        self.states = {partition: PartitionState() for partition in Partition}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def _prune_pickers(self) -> None:
        for partition, state in self.states.items():
            state.picker.retain(
                entry.id for entry in self._entries.values() if entry.postponed_view is partition
            )
