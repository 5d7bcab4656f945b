"""
Canonical forms for priority, time-of-day and free-text fields.
"""

import math


def normalize_priority(value: int | float | str | None) -> int | None:
    """
    Canonicalize a priority value.

    Returns None for missing, blank, non-numeric or non-finite input;
    otherwise truncates toward zero. normalize_priority(normalize_priority(x))
    always equals normalize_priority(x).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return math.trunc(parsed)


def normalize_time(value: str | None) -> str | None:
    """Trim a time-of-day string; blank means no time."""
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def normalize_text(value: str | None) -> str | None:
    """Trim a note or link; blank means absent."""
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None
