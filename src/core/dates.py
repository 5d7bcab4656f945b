"""
Calendar math for month grids and date ranges.

Dates cross the wire as ISO strings (YYYY-MM-DD); everything here works on
datetime.date and converts at the edges with format_date/parse_date.
"""

import calendar
from datetime import date, datetime, timedelta


def format_date(d: date) -> str:
    """Format date as YYYY-MM-DD."""
    return d.strftime("%Y-%m-%d")


def parse_date(value: str | date) -> date:
    """Parse a YYYY-MM-DD string (dates pass through unchanged)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def is_iso_date(value: str | None) -> bool:
    """Check whether value is a valid YYYY-MM-DD string."""
    if not value or not isinstance(value, str):
        return False
    try:
        parse_date(value)
    except ValueError:
        return False
    return True


def format_month_year(d: date) -> str:
    """Format date as 'January 2026'."""
    return d.strftime("%B %Y")


def start_of_week(d: date) -> date:
    """Sunday on or before d."""
    return d - timedelta(days=(d.weekday() + 1) % 7)


def end_of_week(d: date) -> date:
    """Saturday on or after d."""
    return start_of_week(d) + timedelta(days=6)


def normalize_range(start: date, end: date) -> tuple[date, date]:
    """Return (earlier, later) regardless of argument order."""
    return (start, end) if start <= end else (end, start)


def days_in_range(start: date, end: date) -> list[date]:
    """
    Every day from start to end inclusive.

    Argument order does not matter: a reversed range yields the same days.
    """
    first, last = normalize_range(start, end)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def month_grid(year: int, month: int) -> list[date]:
    """
    Days shown for a month view: whole Sunday-to-Saturday weeks covering the month.

    Example: month_grid(2026, 1) starts on Sun 2025-12-28 and ends on Sat 2026-01-31.
    """
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return days_in_range(start_of_week(first), end_of_week(last))


def is_date_in_range(d: date, start: date | None, end: date | None) -> bool:
    """Check whether d falls inside a (possibly reversed or open-ended) selection."""
    if start is None:
        return False
    if end is None:
        return d == start
    first, last = normalize_range(start, end)
    return first <= d <= last


def range_label(start: date, end: date) -> str:
    """'2026-01-01' for a single day, '2026-01-01 → 2026-01-05' for a span."""
    first, last = normalize_range(start, end)
    if first == last:
        return format_date(first)
    return f"{format_date(first)} → {format_date(last)}"


def next_month(year: int, month: int) -> tuple[int, int]:
    """(year, month) after the given one; months are 1-12."""
    if month == 12:
        return year + 1, 1
    return year, month + 1


def prev_month(year: int, month: int) -> tuple[int, int]:
    """(year, month) before the given one; months are 1-12."""
    if month == 1:
        return year - 1, 12
    return year, month - 1
