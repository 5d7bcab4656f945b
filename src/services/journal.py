"""SQLite journal of transfer outcomes."""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from core.config import DB_PATH
from core.database import create_schema, get_connection, insert_transfer


@dataclass
class TransferLog:
    """Outcome of one transfer operation."""

    kind: str  # copy, move, postpone, reactivate, repostpone
    mode: str  # copy or move
    target: str  # target date(s) or partition
    requested: int = 0
    created: int = 0
    deleted: int = 0
    failed_ids: list[str] = field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None
    transfer_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class SqliteJournal:
    """Callable journal writing TransferLog rows to SQLite."""

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = get_connection(self.db_path)
        try:
            create_schema(conn)
        finally:
            conn.close()

    def __call__(self, log: TransferLog) -> None:
        row = asdict(log)
        failed_ids = row.pop("failed_ids")
        conn = get_connection(self.db_path)
        try:
            insert_transfer(conn, row, failed_ids)
        finally:
            conn.close()
