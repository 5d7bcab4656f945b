"""
Client-side event cache keyed by calendar date.

Between server round-trips the cache is the system of record for views.
Writes are last-write-wins per event id in arrival order, so optimistic
merges and full refetches may interleave in any order without leaving two
copies of one id behind.
"""

from collections.abc import Iterable, Iterator
from datetime import date
from typing import Literal

from core.dates import days_in_range, format_date
from models.events import Event, EventFields

SortOrder = Literal["time", "priority"]


def _time_key(event: EventFields) -> tuple:
    # Untimed events sort after timed ones
    return (event.start_time is None, event.start_time or "")


def _priority_key(event: EventFields) -> tuple:
    # Missing priority sorts last
    return (event.priority is None, event.priority if event.priority is not None else 0)


def _title_key(event: EventFields) -> tuple:
    return (event.title.casefold(), event.title)


def sort_key(event: EventFields, order: SortOrder = "time") -> tuple:
    """Total order within one day: time, priority, title (priority first when asked)."""
    if order == "priority":
        return (_priority_key(event), _time_key(event), _title_key(event))
    return (_time_key(event), _priority_key(event), _title_key(event))


def sort_events(events: Iterable[EventFields], order: SortOrder = "time") -> list:
    """Return events sorted for display."""
    return sorted(events, key=lambda event: sort_key(event, order))


def _key(day: str | date) -> str:
    return format_date(day) if isinstance(day, date) else day


class EventCache:
    """Mapping of YYYY-MM-DD -> ordered list of events."""

    def __init__(self, events: Iterable[Event] | None = None):
        self._buckets: dict[str, list[Event]] = {}
        if events is not None:
            self.replace_all(events)

    def get(self, day: str | date) -> list[Event]:
        """Events for a day in display order (empty list if none)."""
        return list(self._buckets.get(_key(day), []))

    def replace_all(self, events: Iterable[Event]) -> None:
        """Swap in the result of a full refetch."""
        latest: dict[str, Event] = {}
        for event in events:
            latest.pop(event.id, None)
            latest[event.id] = event

        buckets: dict[str, list[Event]] = {}
        for event in latest.values():
            buckets.setdefault(event.date, []).append(event)
        self._buckets = {day: sort_events(items) for day, items in buckets.items()}

    def merge_optimistic(self, events: Iterable[Event]) -> None:
        """Insert or update events without waiting for the server."""
        touched = set()
        for event in events:
            touched.update(self._discard(event.id))
            self._buckets.setdefault(event.date, []).append(event)
            touched.add(event.date)
        self._settle(touched)

    def remove(self, event_ids: Iterable[str]) -> int:
        """Drop events by id. Returns how many were present."""
        touched = set()
        removed = 0
        for event_id in event_ids:
            days = self._discard(event_id)
            removed += len(days)
            touched.update(days)
        self._settle(touched)
        return removed

    def find(self, event_id: str) -> Event | None:
        for items in self._buckets.values():
            for event in items:
                if event.id == event_id:
                    return event
        return None

    def dates(self) -> list[str]:
        return sorted(self._buckets)

    def events_in_range(self, start: date, end: date) -> dict[str, list[Event]]:
        """Every day of the (possibly reversed) range with its events."""
        return {format_date(day): self.get(day) for day in days_in_range(start, end)}

    def snapshot(self) -> dict[str, list[Event]]:
        return {day: list(items) for day, items in self._buckets.items()}

    def clear(self) -> None:
        self._buckets = {}

    def __len__(self) -> int:
        return sum(len(items) for items in self._buckets.values())

    def __contains__(self, event_id: object) -> bool:
        return isinstance(event_id, str) and self.find(event_id) is not None

    def __iter__(self) -> Iterator[Event]:
        for day in self.dates():
            yield from self._buckets[day]

    def _discard(self, event_id: str) -> list[str]:
        days = []
        for day, items in self._buckets.items():
            kept = [event for event in items if event.id != event_id]
            if len(kept) != len(items):
                self._buckets[day] = kept
                days.append(day)
        return days

    def _settle(self, days: Iterable[str]) -> None:
        for day in days:
            items = self._buckets.get(day)
            if not items:
                self._buckets.pop(day, None)
            else:
                self._buckets[day] = sort_events(items)
