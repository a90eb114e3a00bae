"""Pick the cards a user should study now."""

from datetime import datetime, timezone as dt_timezone

from . import conf, states

# Sorts records without a due date ahead of everything else
_NEVER = datetime.min.replace(tzinfo=dt_timezone.utc)


def _due_key(record):
    return (
        record.next_due_at or _NEVER,
        record.created_at or _NEVER,
        record.pk or 0,
    )


def due_cards(records, now, limit=None):
    """
    Filter records that are due for review.

    A record is due when it has never been reviewed or its next_due_at is at
    or before ``now``. Results are ordered by next_due_at (never-reviewed
    first), then by creation order, and capped at ``limit`` (default
    STUDY_SESSION_SIZE).
    """
    if limit is None:
        limit = conf.session_size()
    if limit < 0:
        raise ValueError(f"Session limit cannot be negative, got {limit}")

    due = [record for record in records if record.is_due(now)]
    return sorted(due, key=_due_key)[:limit]


def next_due_card(records, now):
    """Return the single most overdue record, or None when nothing is due."""
    due = due_cards(records, now, limit=1)
    return due[0] if due else None


def status_counts(records, now):
    """Count records per lifecycle status, plus how many are due."""
    counts = {status: 0 for status in states.STATUSES}
    total = 0
    due = 0
    for record in records:
        counts[record.status] += 1
        total += 1
        if record.is_due(now):
            due += 1

    return {
        'total': total,
        'new': counts[states.NEW],
        'learning': counts[states.LEARNING],
        'review': counts[states.REVIEW],
        'graduated': counts[states.GRADUATED],
        'due': due,
    }
