"""
Daily new-card limit tracking.

The number of new cards introduced today is derived from review history
rather than kept as a counter: an item counts when its first ever review
(the transition out of NEW) happened on the same UTC calendar day as `now`.
Deleting today's history therefore lowers the count with no reset step.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Protocol

from .models import ItemState, ReviewItem, ensure_utc


class HistoryEntry(Protocol):
    """Minimal shape of a review log entry."""

    state_before: ItemState | str
    reviewed_at: datetime


def utc_day(ts: datetime) -> date:
    """Calendar day of a timestamp, using the UTC midnight boundary."""
    return ensure_utc(ts).date()


def new_cards_introduced_today(history: Iterable[ReviewItem], now: datetime) -> int:
    """
    Count items first reviewed today.

    Args:
        history: The learner's review items (any order, any states)
        now: Reference time defining "today"

    Returns:
        Number of items whose first review fell on today's UTC date
    """
    today = utc_day(now)
    count = 0
    for item in history:
        if item.last_reviewed is None or item.introduced_at is None:
            continue
        if utc_day(item.last_reviewed) == today and utc_day(item.introduced_at) == today:
            count += 1
    return count


def new_cards_introduced_from_log(entries: Iterable[HistoryEntry], now: datetime) -> int:
    """
    Count today's log entries that moved an item out of NEW.

    Same derivation as new_cards_introduced_today, over raw history rows.
    """
    today = utc_day(now)
    return sum(
        1
        for entry in entries
        if ItemState.coerce(entry.state_before) == ItemState.NEW
        and utc_day(entry.reviewed_at) == today
    )
