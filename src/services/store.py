"""
Calendar store: the client-side owner of events, backlog and selection.

Every operation returns an ActionResult instead of raising. A 401/403 from
any call tears the whole session down (caches, backlog, selection, token)
and notifies the logout listeners so the caller can force a new login.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from core.config import SELECTION_SETTLE_SECONDS
from core.dates import format_date
from core.errors import (
    AuthExpired,
    CalendarError,
    ErrorCodes,
    ValidationRejected,
)
from core.validation import validate_batch
from models.events import Event, EventDraft, FriendMeta, Partition, PostponedEntry
from services.backlog import PostponedBacklog
from services.cache import EventCache, SortOrder, sort_events
from services.journal import TransferLog
from services.selection import Picker, SelectionModel, default_transfer_dates
from services.transfer import TransferEngine, TransferMode, TransferResult

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    SELF = "self"
    FRIEND = "friend"


@dataclass
class ActionResult:
    """Success flag plus a message fit for showing to the user."""

    ok: bool
    message: str | None = None
    code: str | None = None
    details: list[str] = field(default_factory=list)
    transfer: TransferResult | None = None

    @classmethod
    def success(cls, message: str | None = None, transfer: TransferResult | None = None):
        return cls(ok=True, message=message, transfer=transfer)

    @classmethod
    def failure(cls, error: CalendarError | str, code: str | None = None):
        if isinstance(error, CalendarError):
            return cls(ok=False, message=error.message, code=error.code, details=list(error.details))
        return cls(ok=False, message=error, code=code)


@dataclass
class DayBoardState:
    """Transfer panel for the committed range: one source day, its checked events."""

    source_date: str | None = None
    target_dates: list[str] = field(default_factory=list)
    mode: TransferMode = TransferMode.COPY
    sort_order: SortOrder = "time"
    picker: Picker = field(default_factory=Picker)


class CalendarStore:
    """
    Explicit store instance with an injected transport.

    Args:
        api: transport (see core.api_client.CalendarApi)
        token: bearer token of the signed-in user
        journal: optional transfer journal callable
        on_range_committed: bulk-input hook for multi-day selections
        settle_delay: seconds between drag release and on_range_committed
    """

    def __init__(
        self,
        api,
        token: str | None = None,
        journal: Callable[[TransferLog], None] | None = None,
        on_range_committed: Callable[[list[date]], None] | None = None,
        settle_delay: float = SELECTION_SETTLE_SECONDS,
    ):
        self.api = api
        self.token = token
        self.events = EventCache()
        self.friend_events = EventCache()  # read-only comparison cache
        self.backlog = PostponedBacklog()
        self.selection = SelectionModel(on_range_committed, settle_delay)
        self.board = DayBoardState()
        self.engine = TransferEngine(api, self.events, self.backlog, journal)

        self.view_mode = ViewMode.SELF
        self.friend: FriendMeta | None = None
        self.compare_mode = False
        self.last_error: str | None = None
        self.in_flight: set[str] = set()

        self._logout_listeners: list[Callable[[], None]] = []
        self._issued: dict[str, int] = defaultdict(int)
        self._applied: dict[str, int] = defaultdict(int)
        self._epoch = 0  # bumped on logout; results from an older session are dropped

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    @property
    def read_only(self) -> bool:
        return self.view_mode is ViewMode.FRIEND

    def on_logout(self, listener: Callable[[], None]) -> None:
        self._logout_listeners.append(listener)

    def logout(self) -> None:
        """Full session teardown."""
        self.token = None
        self._epoch += 1
        self._clear_session_data()
        self.selection.clear()
        self.board = DayBoardState()
        self.view_mode = ViewMode.SELF
        self.friend = None
        self.compare_mode = False
        self.in_flight.clear()
        for listener in list(self._logout_listeners):
            listener()

    def _clear_session_data(self) -> None:
        self.events.clear()
        self.friend_events.clear()
        self.backlog.clear()

    async def _run(
        self,
        action: str,
        operation: Callable[[], Awaitable[ActionResult]],
        mutates: bool = True,
        exclusive: bool = True,
    ) -> ActionResult:
        if not self.token:
            self.logout()
            return ActionResult.failure("Not signed in", ErrorCodes.AUTH_EXPIRED)
        if mutates and self.read_only:
            return ActionResult.failure("Friend calendars are read-only", ErrorCodes.READ_ONLY)
        if exclusive and action in self.in_flight:
            return ActionResult.failure(f"{action} already in progress", ErrorCodes.IN_FLIGHT)

        if exclusive:
            self.in_flight.add(action)
        epoch = self._epoch
        try:
            result = await operation()
            if epoch != self._epoch:
                # Session ended while this call was pending
                if self.token is None:
                    self._clear_session_data()
                return ActionResult.failure("Session ended", ErrorCodes.AUTH_EXPIRED)
            return result
        except AuthExpired as e:
            logger.warning("%s: session expired (%s), logging out", action, e.status_code)
            self.logout()
            return ActionResult.failure(e)
        except CalendarError as e:
            logger.error("%s failed: %s", action, e.message)
            return ActionResult.failure(e)
        finally:
            if exclusive:
                self.in_flight.discard(action)

    def is_busy(self, action: str) -> bool:
        """True while an action is pending; its trigger should be disabled."""
        return action in self.in_flight

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def _next_seq(self, key: str) -> tuple[int, int]:
        self._issued[key] += 1
        return self._epoch, self._issued[key]

    def _is_current(self, key: str, ticket: tuple[int, int]) -> bool:
        """Apply a fetch only if its session is live and nothing newer was applied."""
        epoch, seq = ticket
        if epoch != self._epoch or self.token is None:
            logger.warning("Discarding %s fetch #%s from an ended session", key, seq)
            return False
        if seq < self._applied[key]:
            logger.warning("Discarding stale %s fetch #%s (applied #%s)", key, seq, self._applied[key])
            return False
        self._applied[key] = seq
        return True

    async def fetch_events(self) -> ActionResult:
        """Refetch own events and replace the primary cache."""

        async def operation():
            ticket = self._next_seq("events")
            events = await self.api.list_events(self.token)
            if not self._is_current("events", ticket):
                return ActionResult.success("Stale refresh discarded")
            self.events.replace_all(events)
            return ActionResult.success(f"Loaded {len(events)} event(s)")

        return await self._run("fetch_events", operation, mutates=False, exclusive=False)

    async def fetch_friend_events(self) -> ActionResult:
        """Refetch the viewed friend's events into the read-only cache."""
        if self.friend is None:
            return ActionResult.failure("No friend calendar selected")
        friend_id = self.friend.id

        async def operation():
            key = f"friend:{friend_id}"
            ticket = self._next_seq(key)
            events, meta = await self.api.list_friend_events(self.token, friend_id)
            still_viewing = self.read_only and self.friend is not None and self.friend.id == friend_id
            if not still_viewing or not self._is_current(key, ticket):
                return ActionResult.success("Stale refresh discarded")
            self.friend = meta
            self.friend_events.replace_all(events)
            return ActionResult.success(f"Loaded {len(events)} event(s) for {meta.username}")

        return await self._run("fetch_friend_events", operation, mutates=False, exclusive=False)

    async def fetch_postponed(self) -> ActionResult:
        """Refetch the backlog."""

        async def operation():
            ticket = self._next_seq("postponed")
            entries = await self.api.list_postponed(self.token)
            if not self._is_current("postponed", ticket):
                return ActionResult.success("Stale refresh discarded")
            self.backlog.replace_all(entries)
            return ActionResult.success(f"Loaded {len(entries)} postponed entr(y/ies)")

        return await self._run("fetch_postponed", operation, mutates=False, exclusive=False)

    async def refresh(self) -> ActionResult:
        """
        Periodic/focus refresh of whatever calendar is on screen.

        Viewing a friend fills the read-only friend cache (and the own cache
        too while comparing); otherwise the own cache is replaced.
        """
        if self.read_only:
            result = await self.fetch_friend_events()
            if result.ok and self.compare_mode:
                return await self.fetch_events()
            return result
        return await self.fetch_events()

    # -------------------------------------------------------------------------
    # Friend view
    # -------------------------------------------------------------------------

    async def view_friend(self, friend_id: str, friend_name: str | None = None) -> ActionResult:
        """Switch to a friend's calendar, falling back to the own one on failure."""
        self.view_mode = ViewMode.FRIEND
        self.friend = FriendMeta(id=friend_id, username=friend_name or friend_id)
        self.friend_events.clear()
        self.last_error = None

        result = await self.fetch_friend_events()
        if not result.ok and self.token:
            self.last_error = result.message or "Unable to load friend calendar"
            await self.view_own_calendar()
        return result

    async def view_own_calendar(self) -> ActionResult:
        self.view_mode = ViewMode.SELF
        self.friend = None
        self.friend_events.clear()
        self.compare_mode = False
        return await self.fetch_events()

    async def toggle_compare(self) -> ActionResult:
        """Overlay the own calendar on the friend being viewed."""
        if self.compare_mode:
            self.compare_mode = False
            return ActionResult.success("Compare off")
        result = await self.fetch_events()
        if result.ok:
            self.compare_mode = True
        return result

    def visible_events(self, day: str | date, today: date | None = None) -> list[Event]:
        """Events on screen for a day, with locked time capsules redacted."""
        cache = self.friend_events if self.read_only else self.events
        return [
            event.redacted() if event.is_locked(today) else event
            for event in cache.get(day)
        ]

    def compare_events(self, day: str | date) -> list[Event]:
        """Own events shown next to a friend's while comparing."""
        if not (self.read_only and self.compare_mode):
            return []
        return self.events.get(day)

    # -------------------------------------------------------------------------
    # Single-item edits
    # -------------------------------------------------------------------------

    async def add_event(self, day: str | date, draft: EventDraft | dict[str, Any]) -> ActionResult:
        draft = EventDraft.model_validate(draft)
        day = format_date(day) if isinstance(day, date) else day

        async def operation():
            event = draft.to_event(day)
            validate_batch([event])
            await self.api.create_events(self.token, [event])
            self.events.merge_optimistic([event])
            return ActionResult.success(f"Added {event.title}")

        return await self._then_resync(await self._run("add_event", operation), events=True)

    async def add_events_to_range(
        self, drafts: Sequence[EventDraft | dict[str, Any] | None]
    ) -> ActionResult:
        """
        Create one event per selected day from index-aligned drafts.

        Days whose draft has no title are skipped. The selection is cleared
        once the batch is saved.
        """
        days = self.selection.days()
        if not days:
            return ActionResult.failure("No date range selected", ErrorCodes.VALIDATION_REJECTED)

        async def operation():
            batch = []
            for day, draft in zip(days, drafts):
                if draft is None:
                    continue
                draft = EventDraft.model_validate(draft)
                if draft.title:
                    batch.append(draft.to_event(format_date(day)))
            validate_batch(batch)
            await self.api.create_events(self.token, batch)
            self.events.merge_optimistic(batch)
            self.selection.clear()
            return ActionResult.success(f"Added {len(batch)} event(s)")

        return await self._then_resync(await self._run("add_range", operation), events=True)

    async def edit_event(self, event: Event) -> ActionResult:
        """Full-field replace of one event."""

        async def operation():
            validate_batch([event])
            version = await self.api.update_event(self.token, event)
            updated = event.model_copy(update={"version": version}) if version else event
            self.events.merge_optimistic([updated])
            return ActionResult.success(f"Saved {event.title}")

        return await self._then_resync(
            await self._run(f"edit:{event.id}", operation), events=True
        )

    async def delete_event(self, event_id: str) -> ActionResult:
        async def operation():
            await self.api.delete_event(self.token, event_id)
            self.events.remove([event_id])
            return ActionResult.success("Deleted")

        return await self._then_resync(
            await self._run(f"delete:{event_id}", operation), events=True
        )

    async def add_postponed(
        self, draft: EventDraft | dict[str, Any], partition: Partition | str = Partition.ALL
    ) -> ActionResult:
        """Create a backlog entry directly."""
        draft = EventDraft.model_validate(draft)

        async def operation():
            try:
                entry = draft.to_postponed(Partition(partition))
            except ValueError:
                raise ValidationRejected(f"Unknown backlog partition '{partition}'")
            validate_batch([entry])
            await self.api.create_postponed(self.token, [entry])
            self.backlog.merge_optimistic([entry])
            return ActionResult.success(f"Postponed {entry.title}")

        return await self._then_resync(await self._run("add_postponed", operation), postponed=True)

    async def delete_postponed(self, entry_id: str) -> ActionResult:
        async def operation():
            await self.api.delete_postponed(self.token, entry_id)
            self.backlog.remove([entry_id])
            return ActionResult.success("Deleted")

        return await self._then_resync(
            await self._run(f"delete_postponed:{entry_id}", operation), postponed=True
        )

    # -------------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------------

    def _events_by_id(self, event_ids: Iterable[str]) -> list[Event]:
        found, missing = [], []
        for event_id in dict.fromkeys(event_ids):
            event = self.events.find(event_id)
            if event is None:
                missing.append(event_id)
            else:
                found.append(event)
        if missing:
            raise ValidationRejected("Unknown event(s)", details=missing)
        return found

    def _entries_by_id(self, entry_ids: Iterable[str]) -> list[PostponedEntry]:
        found, missing = [], []
        for entry_id in dict.fromkeys(entry_ids):
            entry = self.backlog.find(entry_id)
            if entry is None:
                missing.append(entry_id)
            else:
                found.append(entry)
        if missing:
            raise ValidationRejected("Unknown postponed entr(y/ies)", details=missing)
        return found

    async def _transfer(
        self,
        action: str,
        run: Callable[[], Awaitable[TransferResult]],
        events: bool = False,
        postponed: bool = False,
    ) -> ActionResult:
        async def operation():
            outcome = await run()
            if outcome.ok:
                return ActionResult.success(outcome.message, transfer=outcome)
            result = ActionResult.failure(outcome.error)
            result.transfer = outcome
            return result

        result = await self._run(action, operation)
        if result.transfer is not None:
            await self._resync(events=events, postponed=postponed)
        return result

    async def copy_events(self, event_ids: Sequence[str], target_dates: Sequence[str]) -> ActionResult:
        return await self._transfer(
            "copy",
            lambda: self.engine.copy_to_dates(self.token, self._events_by_id(event_ids), target_dates),
            events=True,
        )

    async def move_events(self, event_ids: Sequence[str], target_date: str) -> ActionResult:
        return await self._transfer(
            "move",
            lambda: self.engine.move_to_date(self.token, self._events_by_id(event_ids), target_date),
            events=True,
        )

    async def postpone_events(
        self,
        event_ids: Sequence[str],
        partition: Partition | str = Partition.ALL,
        mode: TransferMode | str = TransferMode.COPY,
    ) -> ActionResult:
        return await self._transfer(
            "postpone",
            lambda: self.engine.postpone(self.token, self._events_by_id(event_ids), partition, mode),
            events=True,
            postponed=True,
        )

    async def reactivate_entries(
        self,
        entry_ids: Sequence[str],
        target_date: str,
        mode: TransferMode | str = TransferMode.COPY,
    ) -> ActionResult:
        return await self._transfer(
            "reactivate",
            lambda: self.engine.reactivate(self.token, self._entries_by_id(entry_ids), target_date, mode),
            events=True,
            postponed=True,
        )

    async def repostpone_entries(
        self,
        entry_ids: Sequence[str],
        partition: Partition | str,
        mode: TransferMode | str = TransferMode.MOVE,
    ) -> ActionResult:
        return await self._transfer(
            "repostpone",
            lambda: self.engine.repostpone(self.token, self._entries_by_id(entry_ids), partition, mode),
            postponed=True,
        )

    # -------------------------------------------------------------------------
    # Range board and backlog panels
    # -------------------------------------------------------------------------

    def reset_board(self) -> None:
        """Point the transfer panel at the committed range's defaults."""
        source, targets = default_transfer_dates(self.selection.days())
        self.board = DayBoardState(
            source_date=source,
            target_dates=targets,
            mode=self.board.mode,
            sort_order=self.board.sort_order,
        )

    def set_board_source(self, source_date: str) -> None:
        """Changing the source day forgets the checked events."""
        self.board.source_date = source_date
        self.board.picker.clear()
        self.board.target_dates = [
            target for target in self.board.target_dates if target != source_date
        ]

    def board_events(self) -> list[Event]:
        if not self.board.source_date:
            return []
        return sort_events(self.events.get(self.board.source_date), self.board.sort_order)

    def range_overview(self) -> dict[str, list[Event]]:
        """Each selected day with its events, for the range overview."""
        bounds = self.selection.selection.bounds()
        if bounds is None:
            return {}
        return self.events.events_in_range(*bounds)

    def can_transfer_board(self) -> bool:
        return (
            not self.read_only
            and len(self.board.picker) > 0
            and bool(self.board.target_dates)
            and not self.is_busy(self.board.mode.value)
        )

    async def transfer_board(self) -> ActionResult:
        """Copy or move the checked events of the source day to the target."""
        picked = self.board.picker.pick(self.board_events())
        ids = [event.id for event in picked]
        if not ids:
            return ActionResult.failure("Nothing selected", ErrorCodes.VALIDATION_REJECTED)
        if self.board.mode is TransferMode.MOVE:
            result = await self.move_events(ids, self.board.target_dates[0] if self.board.target_dates else "")
        else:
            result = await self.copy_events(ids, self.board.target_dates)
        if result.transfer is not None:
            self.board.picker.clear()
        return result

    async def postpone_board(self, partition: Partition | str = Partition.ALL) -> ActionResult:
        """Send the checked events of the source day to the backlog."""
        ids = [event.id for event in self.board.picker.pick(self.board_events())]
        if not ids:
            return ActionResult.failure("Nothing selected", ErrorCodes.VALIDATION_REJECTED)
        result = await self.postpone_events(ids, partition, self.board.mode)
        if result.transfer is not None:
            self.board.picker.clear()
        return result

    async def transfer_backlog(self, partition: Partition | str) -> ActionResult:
        """
        Act on a partition's checked entries using that partition's own state.

        A target partition repostpones; otherwise the entries are reactivated
        onto the target date.
        """
        state = self.backlog.state(Partition(partition))
        ids = [entry.id for entry in self.backlog.selected(partition)]
        if not ids:
            return ActionResult.failure("Nothing selected", ErrorCodes.VALIDATION_REJECTED)
        if state.target_partition is not None:
            result = await self.repostpone_entries(ids, state.target_partition, state.mode)
        else:
            result = await self.reactivate_entries(ids, state.target_date or "", state.mode)
        if result.transfer is not None:
            state.picker.clear()
        return result

    # -------------------------------------------------------------------------
    # Resync
    # -------------------------------------------------------------------------

    async def _resync(self, events: bool = False, postponed: bool = False) -> None:
        if events and self.token:
            await self.fetch_events()
        if postponed and self.token:
            await self.fetch_postponed()

    async def _then_resync(
        self, result: ActionResult, events: bool = False, postponed: bool = False
    ) -> ActionResult:
        if result.ok:
            await self._resync(events=events, postponed=postponed)
        return result
