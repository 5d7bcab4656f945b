#!/usr/bin/env python3
"""
List your calendar (or a friend's) and the postponed backlog.

Usage:
    uv run python src/scripts/list_events.py
    uv run python src/scripts/list_events.py --friend 42 --from 2025-03-01 --to 2025-03-31
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.api_client import get_api_client
from core.config import LOG_LEVEL, SORT_ORDERS
from core.dates import parse_date, range_label
from core.session import TokenStore
from models.events import Partition
from services.store import CalendarStore


def print_event(event, label: str = "-"):
    time = event.start_time or "--:--"
    priority = f" [p{event.priority}]" if event.priority is not None else ""
    print(f"    {label} {time} {event.title}{priority}")
    print(f"      ID: {event.id}")
    if event.origin_dates:
        print(f"      Origins: {' > '.join(event.origin_dates)}")
    if event.was_postponed:
        print("      (was postponed)")


async def main(args) -> int:
    """Print events by day, then each backlog partition."""
    tokens = TokenStore()
    token = tokens.load()
    if not token:
        print("No session token. Set CALENDAR_API_TOKEN or log in first.")
        return 1

    api = get_api_client()
    store = CalendarStore(api, token=token)
    store.on_logout(tokens.clear)

    try:
        if args.friend:
            print(f"Fetching calendar of friend {args.friend}...\n")
            result = await store.view_friend(args.friend)
        else:
            print("Fetching your calendar...\n")
            result = await store.fetch_events()
        if not result.ok:
            print(f"Error: {result.message}")
            return 1

        cache = store.friend_events if store.read_only else store.events
        days = cache.dates()
        if args.start and args.end:
            start, end = parse_date(args.start), parse_date(args.end)
            print(f"Range: {range_label(start, end)}")
            days = [day for day, events in cache.events_in_range(start, end).items() if events]

        owner = store.friend.username if store.read_only else "you"
        print(f"Found {len(cache)} events for {owner}\n")
        print("=" * 80)
        for day in days:
            print(f"\n{day}")
            for event in store.visible_events(day):
                print_event(event)
        print("-" * 80)

        if not store.read_only:
            result = await store.fetch_postponed()
            if not result.ok:
                print(f"Error fetching backlog: {result.message}")
                return 1
            for partition in Partition:
                entries = store.backlog.entries(partition, args.sort)
                print(f"\nPostponed ({partition.value}): {len(entries)}")
                for entry in entries:
                    print_event(entry.redacted() if entry.is_locked() else entry)
            print("-" * 80)
    finally:
        await api.aclose()

    print("\nDone!")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="List calendar events and the postponed backlog")
    parser.add_argument("--friend", help="Friend id to view read-only")
    parser.add_argument("--from", dest="start", help="First day (YYYY-MM-DD)")
    parser.add_argument("--to", dest="end", help="Last day (YYYY-MM-DD)")
    parser.add_argument("--sort", choices=SORT_ORDERS, default="time", help="Backlog order")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL)
    sys.exit(asyncio.run(main(args)))
