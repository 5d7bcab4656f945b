"""
SQLite storage for the transfer journal.
"""

import sqlite3
from pathlib import Path

from core.config import DB_PATH


def get_connection(db_path: Path = DB_PATH) -> sqlite3.Connection:
    """Get a database connection."""
    return sqlite3.connect(db_path)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create journal tables if they don't exist."""
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS transfers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            transfer_id TEXT UNIQUE NOT NULL,
            timestamp TEXT NOT NULL,
            kind TEXT NOT NULL CHECK(kind IN ('copy', 'move', 'postpone', 'reactivate', 'repostpone')),
            mode TEXT NOT NULL CHECK(mode IN ('copy', 'move')),
            target TEXT NOT NULL,
            requested INTEGER NOT NULL,
            created INTEGER NOT NULL,
            deleted INTEGER NOT NULL,
            error_code TEXT,
            error_message TEXT
        )
    """)

    # One row per source item whose delete failed after a successful create
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS transfer_failures (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            transfer_id TEXT NOT NULL,
            source_id TEXT NOT NULL,
            FOREIGN KEY (transfer_id) REFERENCES transfers(transfer_id)
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_transfers_timestamp ON transfers(timestamp)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_transfer_failures_transfer ON transfer_failures(transfer_id)"
    )
    conn.commit()


def insert_transfer(
    conn: sqlite3.Connection, row: dict, failed_ids: list[str]
) -> None:
    """Insert a transfer record and its failed source ids."""
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO transfers (
            transfer_id, timestamp, kind, mode, target, requested,
            created, deleted, error_code, error_message
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            row["transfer_id"],
            row["timestamp"],
            row["kind"],
            row["mode"],
            row["target"],
            row["requested"],
            row["created"],
            row["deleted"],
            row["error_code"],
            row["error_message"],
        ),
    )
    for source_id in failed_ids:
        cursor.execute(
            "INSERT INTO transfer_failures (transfer_id, source_id) VALUES (?, ?)",
            (row["transfer_id"], source_id),
        )
    conn.commit()


def list_unresolved_failures(conn: sqlite3.Connection) -> list[tuple[str, str, str]]:
    """(timestamp, kind, source_id) for every recorded failed delete, newest first."""
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT t.timestamp, t.kind, f.source_id
        FROM transfer_failures f
        JOIN transfers t ON t.transfer_id = f.transfer_id
        ORDER BY t.timestamp DESC
        """
    )
    return cursor.fetchall()
