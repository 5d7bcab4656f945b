#!/usr/bin/env python3
"""
Copy, move, postpone, reactivate or repostpone events by id.

Every transfer is journaled to the SQLite database (see init_db.py).

Usage:
    uv run python src/scripts/transfer_events.py copy --to 2025-03-10 --to 2025-03-11 ID [ID ...]
    uv run python src/scripts/transfer_events.py move --to 2025-03-10 ID [ID ...]
    uv run python src/scripts/transfer_events.py postpone --partition week --mode move ID [ID ...]
    uv run python src/scripts/transfer_events.py reactivate --to 2025-03-10 --mode move ID [ID ...]
    uv run python src/scripts/transfer_events.py repostpone --partition all ID [ID ...]
    uv run python src/scripts/transfer_events.py failures
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.api_client import get_api_client
from core.config import DB_PATH, DEFAULT_PARTITION, LOG_LEVEL, TRANSFER_MODES
from core.database import get_connection, list_unresolved_failures
from core.session import TokenStore
from models.events import Partition
from services.journal import SqliteJournal
from services.store import CalendarStore


async def run_transfer(args) -> int:
    """Load the calendar and backlog, then run one transfer."""
    tokens = TokenStore()
    token = tokens.load()
    if not token:
        print("No session token. Set CALENDAR_API_TOKEN or log in first.")
        return 1

    api = get_api_client()
    store = CalendarStore(api, token=token, journal=SqliteJournal())
    store.on_logout(tokens.clear)

    try:
        print("Loading calendar and backlog...")
        for result in (await store.fetch_events(), await store.fetch_postponed()):
            if not result.ok:
                print(f"Error: {result.message}")
                return 1

        if args.command == "copy":
            result = await store.copy_events(args.ids, args.to)
        elif args.command == "move":
            result = await store.move_events(args.ids, args.to)
        elif args.command == "postpone":
            result = await store.postpone_events(args.ids, args.partition, args.mode)
        elif args.command == "reactivate":
            result = await store.reactivate_entries(args.ids, args.to, args.mode)
        else:
            result = await store.repostpone_entries(args.ids, args.partition, args.mode)
    finally:
        await api.aclose()

    if not result.ok:
        print(f"Error: {result.message}")
        for detail in result.details:
            print(f"  - {detail}")
        return 1

    print(result.message)
    for item in result.transfer.created:
        print(f"  + {item.id} {item.title}")
    return 0


def show_failures() -> int:
    """Print source items left behind by moves whose delete failed."""
    if not DB_PATH.exists():
        print(f"No journal at {DB_PATH}")
        return 0
    conn = get_connection(DB_PATH)
    try:
        rows = list_unresolved_failures(conn)
    finally:
        conn.close()
    print(f"Found {len(rows)} failed source deletes\n")
    for timestamp, kind, source_id in rows:
        print(f"  {timestamp}  {kind:<10}  {source_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Transfer calendar events")
    commands = parser.add_subparsers(dest="command", required=True)

    copy = commands.add_parser("copy", help="Copy events to one or more dates")
    copy.add_argument("--to", action="append", required=True, help="Target date (repeatable)")

    move = commands.add_parser("move", help="Move events to a date")
    move.add_argument("--to", required=True, help="Target date")

    postpone = commands.add_parser("postpone", help="Send events to the backlog")
    postpone.add_argument("--partition", choices=[p.value for p in Partition], default=DEFAULT_PARTITION)
    postpone.add_argument("--mode", choices=TRANSFER_MODES, default="copy")

    reactivate = commands.add_parser("reactivate", help="Put backlog entries back on a date")
    reactivate.add_argument("--to", required=True, help="Target date")
    reactivate.add_argument("--mode", choices=TRANSFER_MODES, default="copy")

    repostpone = commands.add_parser("repostpone", help="Move backlog entries between partitions")
    repostpone.add_argument("--partition", choices=[p.value for p in Partition], required=True)
    repostpone.add_argument("--mode", choices=TRANSFER_MODES, default="move")

    for sub in (copy, move, postpone, reactivate, repostpone):
        sub.add_argument("ids", nargs="+", help="Event or backlog entry ids")

    commands.add_parser("failures", help="List failed source deletes from the journal")
    return parser


def main():
    args = build_parser().parse_args()
    logging.basicConfig(level=LOG_LEVEL)

    if args.command == "failures":
        sys.exit(show_failures())
    sys.exit(asyncio.run(run_transfer(args)))


if __name__ == "__main__":
    main()
