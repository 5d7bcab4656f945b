"""
Payload validation for outgoing events and postponed entries.
"""

from core.dates import is_iso_date
from core.errors import ValidationRejected
from models.events import Event, Partition, PostponedEntry


def event_errors(event: Event) -> list[str]:
    """
    Collect problems with a dated event.

    Checks:
    1. Title is present
    2. Date is a valid YYYY-MM-DD
    3. Unlock date, when set, is a valid date
    """
    errors = []
    if not event.title:
        errors.append("Missing title")
    if not event.date:
        errors.append("Missing date")
    elif not is_iso_date(event.date):
        errors.append(f"Invalid date '{event.date}'")
    if event.unlock_date and not is_iso_date(event.unlock_date[:10]):
        errors.append(f"Invalid unlock date '{event.unlock_date}'")
    return errors


def postponed_errors(entry: PostponedEntry) -> list[str]:
    """Collect problems with a postponed entry."""
    errors = []
    if not entry.title:
        errors.append("Missing title")
    if entry.postponed_view not in (Partition.WEEK, Partition.ALL):
        errors.append(f"Invalid partition '{entry.postponed_view}'")
    if entry.unlock_date and not is_iso_date(entry.unlock_date[:10]):
        errors.append(f"Invalid unlock date '{entry.unlock_date}'")
    return errors


def validate_batch(items: list[Event] | list[PostponedEntry]) -> None:
    """
    Validate a bulk payload as a whole.

    Raises:
        ValidationRejected: if the batch is empty or any item is malformed.
            Details name each offending item so nothing is sent partially.
    """
    if not items:
        raise ValidationRejected("Nothing selected")

    details = []
    for item in items:
        if isinstance(item, Event):
            errors = event_errors(item)
        else:
            errors = postponed_errors(item)
        if errors:
            label = item.title or item.id
            details.append(f"{label}: " + "; ".join(errors))

    if details:
        raise ValidationRejected("Invalid event payload", details=details)
