"""
Data models for dated events and postponed entries.

Attributes are snake_case; the server speaks camelCase (startTime, originDates,
wasPostponed, unlockDate, postponedView). Both spellings are accepted on input
and payloads are always dumped with the camelCase names.
"""

import json
import uuid
from datetime import date
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from core.dates import parse_date
from core.normalize import normalize_priority, normalize_text, normalize_time

LOCKED_TITLE = "Locked time capsule"


class Partition(str, Enum):
    """Postponed backlog partition."""

    WEEK = "week"
    ALL = "all"


class TransferMode(str, Enum):
    """Whether a transfer keeps (copy) or removes (move) its sources."""

    COPY = "copy"
    MOVE = "move"


def _new_id() -> str:
    return str(uuid.uuid4())


class EventFields(BaseModel):
    """Fields shared by dated events and postponed entries."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    title: str
    start_time: str | None = Field(
        default=None,
        validation_alias=AliasChoices("startTime", "start_time"),
        serialization_alias="startTime",
    )
    priority: int | None = None
    note: str | None = None
    link: str | None = None
    origin_dates: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("originDates", "origin_dates"),
        serialization_alias="originDates",
    )
    was_postponed: bool = Field(
        default=False,
        validation_alias=AliasChoices("wasPostponed", "was_postponed"),
        serialization_alias="wasPostponed",
    )
    unlock_date: str | None = Field(
        default=None,
        validation_alias=AliasChoices("unlockDate", "unlock_date"),
        serialization_alias="unlockDate",
    )
    version: int | None = None  # server updated_at stamp, echoed back on update
    resources: str | None = None  # JSON-encoded attachments

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("start_time", mode="before")
    @classmethod
    def _clean_time(cls, value: Any) -> str | None:
        return normalize_time(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _clean_priority(cls, value: Any) -> int | None:
        return normalize_priority(value)

    @field_validator("note", "link", "unlock_date", mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> str | None:
        return normalize_text(value)

    @field_validator("origin_dates", mode="before")
    @classmethod
    def _clean_origins(cls, value: Any) -> list[str]:
        if not value:
            return []
        return [str(origin) for origin in value if origin]

    @field_validator("was_postponed", mode="before")
    @classmethod
    def _clean_flag(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("resources", mode="before")
    @classmethod
    def _encode_resources(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return value
        return json.dumps(value)

    def is_locked(self, today: date | None = None) -> bool:
        """True while a time capsule's unlock date is still in the future."""
        if not self.unlock_date:
            return False
        try:
            unlock = parse_date(self.unlock_date[:10])
        except ValueError:
            return False
        return (today or date.today()) < unlock

    def redacted(self):
        """Copy with the content withheld, for showing a locked capsule."""
        return self.model_copy(
            update={"title": LOCKED_TITLE, "note": None, "link": None, "resources": None}
        )

    def to_payload(self) -> dict:
        """Wire representation."""
        return self.model_dump(by_alias=True, mode="json")


class Event(EventFields):
    """An event placed on a calendar date (YYYY-MM-DD)."""

    date: str


class PostponedEntry(EventFields):
    """An event parked in the backlog, without a date."""

    postponed_view: Partition = Field(
        default=Partition.ALL,
        validation_alias=AliasChoices("postponedView", "postponed_view"),
        serialization_alias="postponedView",
    )

    @field_validator("postponed_view", mode="before")
    @classmethod
    def _default_partition(cls, value: Any) -> Any:
        return value or Partition.ALL


class EventDraft(BaseModel):
    """User input for one new event, before it has a date or id."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    start_time: str | None = Field(
        default=None, validation_alias=AliasChoices("startTime", "time", "start_time")
    )
    priority: int | None = None
    note: str | None = None
    link: str | None = None
    unlock_date: str | None = Field(
        default=None, validation_alias=AliasChoices("unlockDate", "unlock_date")
    )

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("start_time", mode="before")
    @classmethod
    def _clean_time(cls, value: Any) -> str | None:
        return normalize_time(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _clean_priority(cls, value: Any) -> int | None:
        return normalize_priority(value)

    @field_validator("note", "link", "unlock_date", mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> str | None:
        return normalize_text(value)

    def to_event(self, day: str) -> Event:
        return Event(date=day, **self.model_dump())

    def to_postponed(self, partition: Partition) -> PostponedEntry:
        return PostponedEntry(postponed_view=partition, **self.model_dump())


class FriendMeta(BaseModel):
    """Owner of a calendar being viewed read-only."""

    id: str
    username: str
    preferences: dict[str, Any] = Field(default_factory=dict)
