"""
Date-range selection driven by pointer drags, and checkbox selection of events.

A drag goes IDLE -> DRAGGING (press) -> COMMITTED (release) and stays committed
until cleared. Committing a range longer than one day opens bulk input after a
short settle delay so the view doesn't flicker while the gesture finishes.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum

from core.config import SELECTION_SETTLE_SECONDS
from core.dates import days_in_range, format_date, is_date_in_range, normalize_range
from models.events import EventFields

logger = logging.getLogger(__name__)


class SelectionState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTED = "committed"


@dataclass
class Selection:
    """A date range whose start may be after its end."""

    start: date | None = None
    end: date | None = None
    active: bool = False

    def bounds(self) -> tuple[date, date] | None:
        """(earlier, later), or None without a full range."""
        if self.start is None or self.end is None:
            return None
        return normalize_range(self.start, self.end)

    def days(self) -> list[date]:
        if self.start is None or self.end is None:
            return []
        return days_in_range(self.start, self.end)

    def contains(self, day: date) -> bool:
        return is_date_in_range(day, self.start, self.end)

    @property
    def is_multi_day(self) -> bool:
        bounds = self.bounds()
        return bounds is not None and bounds[0] != bounds[1]


class SelectionModel:
    """
    Tracks the in-progress or committed calendar range.

    Args:
        on_range_committed: called with the selected days once a multi-day
            range has been committed and the settle delay has passed.
        settle_delay: seconds to wait after release before calling it.
    """

    def __init__(
        self,
        on_range_committed: Callable[[list[date]], None] | None = None,
        settle_delay: float = SELECTION_SETTLE_SECONDS,
    ):
        self.selection = Selection()
        self.on_range_committed = on_range_committed
        self.settle_delay = settle_delay
        self._pending: asyncio.TimerHandle | None = None

    @property
    def state(self) -> SelectionState:
        if self.selection.start is None:
            return SelectionState.IDLE
        if self.selection.active:
            return SelectionState.DRAGGING
        return SelectionState.COMMITTED

    def press(self, day: date) -> None:
        """Pointer-down on a day starts a new drag."""
        self._cancel_pending()
        self.selection = Selection(start=day, end=day, active=True)

    def enter(self, day: date) -> None:
        """Pointer-enter on a day extends the drag."""
        if self.state is SelectionState.DRAGGING:
            self.selection.end = day

    def release(self) -> None:
        """Pointer-up commits the drag."""
        if self.state is not SelectionState.DRAGGING:
            return
        self.selection.active = False
        if self.selection.is_multi_day:
            self._schedule()

    def set_range(self, start: date, end: date) -> None:
        """Commit a range without a gesture (keyboard or script input)."""
        self._cancel_pending()
        self.selection = Selection(start=start, end=end, active=False)

    def clear(self) -> None:
        """Explicit cancel or successful bulk submission."""
        self._cancel_pending()
        self.selection = Selection()

    def days(self) -> list[date]:
        return self.selection.days()

    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop means no gesture still settling
            self._fire()
            return
        self._pending = loop.call_later(self.settle_delay, self._fire)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self) -> None:
        self._pending = None
        if self.state is not SelectionState.COMMITTED or not self.selection.is_multi_day:
            return
        if self.on_range_committed is not None:
            days = self.selection.days()
            logger.debug("Range committed: %s days", len(days))
            self.on_range_committed(days)


class Picker:
    """Checkbox selection over a listing of events."""

    def __init__(self):
        self._ids: list[str] = []

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def is_selected(self, item_id: str) -> bool:
        return item_id in self._ids

    def toggle(self, item_id: str) -> None:
        if item_id in self._ids:
            self._ids.remove(item_id)
        else:
            self._ids.append(item_id)

    def toggle_all(self, item_ids: Sequence[str]) -> None:
        """Select everything listed, or nothing if everything already is."""
        if item_ids and all(item_id in self._ids for item_id in item_ids):
            self._ids = []
        else:
            self._ids = list(item_ids)

    def retain(self, item_ids: Iterable[str]) -> None:
        """Forget selections that are no longer listed."""
        present = set(item_ids)
        self._ids = [item_id for item_id in self._ids if item_id in present]

    def pick(self, items: Iterable[EventFields]) -> list:
        """Selected items, in listing order."""
        chosen = set(self._ids)
        return [item for item in items if item.id in chosen]

    def clear(self) -> None:
        self._ids = []

    def __len__(self) -> int:
        return len(self._ids)


def default_transfer_dates(days: Sequence[date]) -> tuple[str | None, list[str]]:
    """
    Default source and target for a range's transfer panel.

    The source is the first day; the target is the first other day, if any.
    """
    if not days:
        return None, []
    source = format_date(days[0])
    targets = [format_date(day) for day in days if format_date(day) != source]
    return source, targets[:1]
