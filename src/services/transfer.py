"""
Copy, move, postpone and reactivate events while keeping their lineage.

Every transfer builds a fresh batch (new ids, extended origin chain), submits
it in one bulk create, and only once that create has succeeded deletes the
sources (move policy). A failed create leaves everything untouched. A failed
delete leaves that source in place next to its new copy; the duplication is
reported, never compensated.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field

from core.errors import (
    AuthExpired,
    CalendarError,
    PartialDeleteFailure,
    ValidationRejected,
)
from core.validation import validate_batch
from models.events import Event, EventFields, Partition, PostponedEntry, TransferMode
from services.backlog import PostponedBacklog
from services.cache import EventCache
from services.journal import TransferLog

logger = logging.getLogger(__name__)


def extend_origin_chain(chain: Iterable[str] | None, *dates: str | None) -> list[str]:
    """
    Append dates to an origin chain.

    Existing entries keep their order; blanks and consecutive repeats are
    dropped, and each new date is added only if it is not already last.

    Example: extend_origin_chain(["2025-01-01"], "2025-01-01", "2025-02-10")
    -> ["2025-01-01", "2025-02-10"]
    """
    result: list[str] = []
    for origin in list(chain or []) + list(dates):
        if origin and (not result or result[-1] != origin):
            result.append(origin)
    return result


def _carried(source: EventFields) -> dict:
    """Content copied verbatim onto every transfer result."""
    return {
        "title": source.title,
        "start_time": source.start_time,
        "priority": source.priority,
        "note": source.note,
        "link": source.link,
        "unlock_date": source.unlock_date,
        "resources": source.resources,
    }


def build_copies(events: Iterable[Event], target_date: str) -> list[Event]:
    """Dated copies of dated events on target_date."""
    return [
        Event(
            **_carried(event),
            date=target_date,
            origin_dates=extend_origin_chain(event.origin_dates, event.date, target_date),
            was_postponed=event.was_postponed,
        )
        for event in events
    ]


def build_postponed(events: Iterable[Event], partition: Partition) -> list[PostponedEntry]:
    """Backlog entries for dated events; the source date closes the chain."""
    return [
        PostponedEntry(
            **_carried(event),
            origin_dates=extend_origin_chain(event.origin_dates, event.date),
            was_postponed=True,
            postponed_view=partition,
        )
        for event in events
    ]


def build_reactivated(entries: Iterable[PostponedEntry], target_date: str) -> list[Event]:
    """Dated events for backlog entries placed on target_date."""
    return [
        Event(
            **_carried(entry),
            date=target_date,
            origin_dates=extend_origin_chain(entry.origin_dates, target_date),
            was_postponed=True,
        )
        for entry in entries
    ]


def build_repostponed(entries: Iterable[PostponedEntry], partition: Partition) -> list[PostponedEntry]:
    """Backlog entries moved between partitions; no date joins the chain."""
    return [
        PostponedEntry(
            **_carried(entry),
            origin_dates=extend_origin_chain(entry.origin_dates),
            was_postponed=True,
            postponed_view=partition,
        )
        for entry in entries
    ]


@dataclass
class TransferResult:
    """What a transfer actually did."""

    created: list[EventFields] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed_deletes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_deletes

    @property
    def error(self) -> PartialDeleteFailure | None:
        if not self.failed_deletes:
            return None
        return PartialDeleteFailure(self.failed_deletes, created=len(self.created))

    @property
    def message(self) -> str:
        if self.failed_deletes:
            return self.error.message
        if self.deleted:
            return f"Moved {len(self.created)} item(s)"
        return f"Created {len(self.created)} item(s)"


def _unique(items: Sequence[EventFields]) -> list:
    """Drop repeated ids, keeping the first occurrence."""
    seen: dict[str, EventFields] = {}
    for item in items:
        seen.setdefault(item.id, item)
    return list(seen.values())


def _mode(value: TransferMode | str) -> TransferMode:
    try:
        return TransferMode(value)
    except ValueError:
        raise ValidationRejected(f"Unknown transfer mode '{value}'")


def _partition(value: Partition | str) -> Partition:
    try:
        return Partition(value)
    except ValueError:
        raise ValidationRejected(f"Unknown backlog partition '{value}'")


class TransferEngine:
    """
    Runs transfers against the transport and keeps local state in step.

    Args:
        api: transport exposing the create/delete collaborator calls
        cache: dated events, merged optimistically after a create
        backlog: postponed entries, merged optimistically after a create
        journal: optional callable receiving a TransferLog per transfer
    """

    def __init__(
        self,
        api,
        cache: EventCache,
        backlog: PostponedBacklog,
        journal: Callable[[TransferLog], None] | None = None,
    ):
        self.api = api
        self.cache = cache
        self.backlog = backlog
        self.journal = journal

    async def copy_to_dates(
        self, token: str, events: Sequence[Event], target_dates: Sequence[str]
    ) -> TransferResult:
        """Copy events onto one or more dates; sources are never touched."""
        events = _unique(events)
        targets = list(dict.fromkeys(target for target in target_dates if target))
        if not targets:
            raise ValidationRejected("No target date")
        self._check_not_same_day(events, targets)
        built = [copy for target in targets for copy in build_copies(events, target)]
        log = TransferLog(kind="copy", mode="copy", target=",".join(targets), requested=len(events))
        return await self._commit(
            token,
            log,
            built,
            create=self.api.create_events,
            merge=self.cache.merge_optimistic,
        )

    async def move_to_date(
        self, token: str, events: Sequence[Event], target_date: str
    ) -> TransferResult:
        """Copy events onto target_date, then delete the originals."""
        events = _unique(events)
        if not target_date:
            raise ValidationRejected("No target date")
        self._check_not_same_day(events, [target_date])
        built = build_copies(events, target_date)
        log = TransferLog(kind="move", mode="move", target=target_date, requested=len(events))
        return await self._commit(
            token,
            log,
            built,
            create=self.api.create_events,
            merge=self.cache.merge_optimistic,
            sources=events,
            delete=self.api.delete_event,
            unmerge=self.cache.remove,
        )

    async def transfer_to_date(
        self,
        token: str,
        events: Sequence[Event],
        target_dates: Sequence[str],
        mode: TransferMode | str = TransferMode.COPY,
    ) -> TransferResult:
        """Copy to every target date, or move to the first one."""
        if _mode(mode) is TransferMode.MOVE:
            return await self.move_to_date(token, events, target_dates[0] if target_dates else "")
        return await self.copy_to_dates(token, events, target_dates)

    async def postpone(
        self,
        token: str,
        events: Sequence[Event],
        partition: Partition | str = Partition.ALL,
        mode: TransferMode | str = TransferMode.COPY,
    ) -> TransferResult:
        """Shelve dated events into a backlog partition."""
        events = _unique(events)
        mode = _mode(mode)
        partition = _partition(partition)
        built = build_postponed(events, partition)
        log = TransferLog(kind="postpone", mode=mode.value, target=partition.value, requested=len(events))
        return await self._commit(
            token,
            log,
            built,
            create=self.api.create_postponed,
            merge=self.backlog.merge_optimistic,
            sources=events if mode is TransferMode.MOVE else (),
            delete=self.api.delete_event if mode is TransferMode.MOVE else None,
            unmerge=self.cache.remove,
        )

    async def reactivate(
        self,
        token: str,
        entries: Sequence[PostponedEntry],
        target_date: str,
        mode: TransferMode | str = TransferMode.COPY,
    ) -> TransferResult:
        """Place backlog entries back on a date."""
        entries = _unique(entries)
        mode = _mode(mode)
        if not target_date:
            raise ValidationRejected("No target date")
        built = build_reactivated(entries, target_date)
        log = TransferLog(kind="reactivate", mode=mode.value, target=target_date, requested=len(entries))
        return await self._commit(
            token,
            log,
            built,
            create=self.api.create_events,
            merge=self.cache.merge_optimistic,
            sources=entries if mode is TransferMode.MOVE else (),
            delete=self.api.delete_postponed if mode is TransferMode.MOVE else None,
            unmerge=self.backlog.remove,
        )

    async def repostpone(
        self,
        token: str,
        entries: Sequence[PostponedEntry],
        partition: Partition | str,
        mode: TransferMode | str = TransferMode.MOVE,
    ) -> TransferResult:
        """Copy or move backlog entries into another partition."""
        entries = _unique(entries)
        mode = _mode(mode)
        partition = _partition(partition)
        if any(entry.postponed_view is partition for entry in entries):
            raise ValidationRejected(f"Entries are already in '{partition.value}'")
        built = build_repostponed(entries, partition)
        log = TransferLog(kind="repostpone", mode=mode.value, target=partition.value, requested=len(entries))
        return await self._commit(
            token,
            log,
            built,
            create=self.api.create_postponed,
            merge=self.backlog.merge_optimistic,
            sources=entries if mode is TransferMode.MOVE else (),
            delete=self.api.delete_postponed if mode is TransferMode.MOVE else None,
            unmerge=self.backlog.remove,
        )

    @staticmethod
    def _check_not_same_day(events: Sequence[Event], targets: Sequence[str]) -> None:
        clashes = sorted({event.date for event in events if event.date in targets})
        if clashes:
            raise ValidationRejected(
                "Target date matches source date", details=clashes
            )

    async def _commit(
        self,
        token: str,
        log: TransferLog,
        built: list,
        create: Callable[[str, list], Awaitable[int]],
        merge: Callable[[list], None],
        sources: Sequence[EventFields] = (),
        delete: Callable[[str, str], Awaitable[None]] | None = None,
        unmerge: Callable[[list[str]], int] | None = None,
    ) -> TransferResult:
        try:
            validate_batch(built)
            await create(token, built)
        except CalendarError as e:
            log.error_code = e.code
            log.error_message = e.message
            self._record(log)
            logger.error("%s to %s failed before any change: %s", log.kind, log.target, e.message)
            raise

        result = TransferResult(created=list(built))
        log.created = len(built)
        merge(built)

        try:
            if delete is not None:
                for source in sources:
                    try:
                        await delete(token, source.id)
                    except AuthExpired:
                        result.failed_deletes.append(source.id)
                        raise
                    except CalendarError as e:
                        logger.warning("Could not remove %s after %s: %s", source.id, log.kind, e.message)
                        result.failed_deletes.append(source.id)
                    else:
                        result.deleted.append(source.id)
        finally:
            if result.deleted and unmerge is not None:
                unmerge(result.deleted)
            log.deleted = len(result.deleted)
            log.failed_ids = list(result.failed_deletes)
            if result.error is not None:
                log.error_code = result.error.code
                log.error_message = result.error.message
            self._record(log)

        logger.info("%s to %s: %s", log.kind, log.target, result.message)
        return result

    def _record(self, log: TransferLog) -> None:
        if self.journal is None:
            return
        try:
            self.journal(log)
        except Exception:
            # Never fail a transfer because the journal is unavailable
            logger.exception("Failed to write transfer journal")
