"""
Data model for the scheduling engine.

- Grade: the learner's response to a card (AGAIN/HARD/GOOD/EASY)
- ItemState: the four-state learning lifecycle
- Direction: which face of a card is being tested
- ReviewItem: one learner's memory state for one (card, direction) pair

All timestamps are timezone-aware UTC datetimes. Naive datetimes passed in
from callers are treated as UTC.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import InvalidGrade, InvalidState

# =============================================================================
# Enumerations
# =============================================================================


class Grade(int, Enum):
    """Learner response. The value is the display/sort weight."""

    AGAIN = 0  # Forgot
    HARD = 2  # Recalled with serious difficulty
    GOOD = 3  # Recalled after some hesitation
    EASY = 4  # Instant recall

    @property
    def weight(self) -> int:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> Grade:
        """
        Coerce user input into a Grade.

        Accepts a Grade, its integer weight, or its name (any case).

        Raises:
            InvalidGrade: if the value does not name a grade
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidGrade(f"Invalid grade: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidGrade(
                    f"Invalid grade {value}. Must be one of "
                    f"{', '.join(str(g.value) for g in cls)}"
                ) from None
        if isinstance(value, str):
            text = value.strip()
            if text.lstrip("-").isdigit():
                return cls.parse(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                raise InvalidGrade(f"Invalid grade name: {value!r}") from None
        raise InvalidGrade(f"Invalid grade: {value!r}")


class ItemState(str, Enum):
    """Lifecycle state of a review item."""

    NEW = "NEW"
    LEARNING = "LEARNING"
    REVIEW = "REVIEW"
    RELEARNING = "RELEARNING"

    @classmethod
    def coerce(cls, value: Any) -> ItemState:
        """Return the matching state or raise InvalidState."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidState(f"Unknown item state: {value!r}") from None


ACTIVE_STATES = frozenset({ItemState.LEARNING, ItemState.REVIEW, ItemState.RELEARNING})
STEP_STATES = frozenset({ItemState.LEARNING, ItemState.RELEARNING})


class Direction(str, Enum):
    """Which face of the card is shown first."""

    FRONT_TO_BACK = "front_to_back"
    BACK_TO_FRONT = "back_to_front"


# =============================================================================
# Time helpers
# =============================================================================


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(ts: datetime) -> datetime:
    """Normalize a datetime to aware UTC (naive values are assumed UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


# =============================================================================
# Review Item
# =============================================================================


@dataclass
class ReviewItem:
    """
    Memory state for one (card, direction) pair.

    Treated as a value: the state machine returns a new instance rather than
    mutating the one it was given. `version` is owned by storage and is
    passed through untouched by scheduling.
    """

    id: str
    card_id: str
    user_id: str
    direction: Direction
    due_date: datetime
    state: ItemState = ItemState.NEW
    interval: float = 0.0  # Days
    ease_factor: float = 2.5
    repetitions: int = 0
    step_index: int = 0
    last_reviewed: datetime | None = None
    introduced_at: datetime | None = None  # First review, when the item left NEW
    category: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    version: int = 0

    @property
    def is_new(self) -> bool:
        return self.state == ItemState.NEW

    @property
    def is_learning(self) -> bool:
        return self.state in STEP_STATES

    def is_due(self, now: datetime) -> bool:
        """Whether the item is eligible for review at `now`."""
        return ensure_utc(now) >= ensure_utc(self.due_date)

    def sort_key(self) -> tuple[datetime, str]:
        """Queue ordering: due date, then id."""
        return (ensure_utc(self.due_date), self.id)


def new_review_items(
    card_id: str,
    user_id: str,
    now: datetime,
    default_ease: float = 2.5,
    category: str | None = None,
) -> list[ReviewItem]:
    """
    Create the NEW review items for a freshly created card.

    One item per direction, due immediately.
    """
    now = ensure_utc(now)
    return [
        ReviewItem(
            id=str(uuid.uuid4()),
            card_id=card_id,
            user_id=user_id,
            direction=direction,
            due_date=now,
            ease_factor=default_ease,
            category=category,
            created_at=now,
        )
        for direction in Direction
    ]
