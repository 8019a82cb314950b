"""
Daily review queue construction.

Key principles:
1. Due cards always come first, oldest due date first
2. New cards fill the remaining daily allowance (plus any extra requested)
3. The queue is a pure projection of the item snapshot: same input, same output
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime

from loguru import logger

from .daily_limit import new_cards_introduced_today
from .models import ACTIVE_STATES, STEP_STATES, ItemState, ReviewItem, ensure_utc


@dataclass
class QueueConfig:
    """Configuration for daily queue building."""

    new_cards_per_day: int = 20
    disabled_categories: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class QueueStats:
    """Summary counts returned alongside a queue."""

    due_count: int = 0
    new_count: int = 0
    learning_count: int = 0
    total_count: int = 0
    new_remaining_today: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _new_item_order(item: ReviewItem) -> tuple[datetime, str]:
    return (ensure_utc(item.created_at), item.id)


def _is_enabled(item: ReviewItem, disabled: Collection[str]) -> bool:
    return not item.category or item.category not in disabled


def build_queue(
    items: Sequence[ReviewItem],
    now: datetime,
    max_new_per_day: int,
    extra_new: int | None = 0,
    show_all: bool = False,
    disabled_categories: Collection[str] | None = None,
) -> tuple[list[ReviewItem], QueueStats]:
    """
    Build today's review queue.

    Args:
        items: Full item set for one learner
        now: Reference time for due checks and "today"
        max_new_per_day: Daily cap on newly introduced items
        extra_new: Additional new items on top of the cap ("continue session")
        show_all: Return every item ordered by due date instead of a session
        disabled_categories: Categories whose NEW items are not introduced

    Returns:
        (queue, stats)
    """
    if not items:
        return [], QueueStats()

    now = ensure_utc(now)
    extra = max(0, extra_new or 0)
    disabled = disabled_categories or ()

    due = sorted(
        (i for i in items if i.state in ACTIVE_STATES and ensure_utc(i.due_date) <= now),
        key=ReviewItem.sort_key,
    )
    new_items = [i for i in items if i.state == ItemState.NEW]
    learning_count = sum(1 for i in items if i.state in STEP_STATES)

    if show_all:
        queue = sorted(items, key=ReviewItem.sort_key)
        stats = QueueStats(
            due_count=len(due),
            new_count=len(new_items),
            learning_count=learning_count,
            total_count=len(items),
            new_remaining_today=0,  # Not meaningful when showing everything
        )
        return queue, stats

    introduced = new_cards_introduced_today(items, now)
    remaining = max(0, max_new_per_day - introduced) + extra

    candidates = sorted(
        (i for i in new_items if _is_enabled(i, disabled)),
        key=_new_item_order,
    )
    appended = candidates[:remaining]

    queue = due + appended
    stats = QueueStats(
        due_count=len(due),
        new_count=len(new_items),
        learning_count=learning_count,
        total_count=len(items),
        new_remaining_today=max(0, remaining - len(appended)),
    )

    logger.debug(
        f"Queue built: {len(due)} due + {len(appended)} new = {len(queue)} items "
        f"(introduced today={introduced}, remaining allowance={stats.new_remaining_today})"
    )
    return queue, stats


class QueueBuilder:
    """Builds daily queues with a fixed per-learner configuration."""

    def __init__(self, config: QueueConfig | None = None):
        self.config = config or QueueConfig()

    def build(
        self,
        items: Sequence[ReviewItem],
        now: datetime,
        extra_new: int | None = 0,
        show_all: bool = False,
    ) -> tuple[list[ReviewItem], QueueStats]:
        return build_queue(
            items,
            now,
            max_new_per_day=self.config.new_cards_per_day,
            extra_new=extra_new,
            show_all=show_all,
            disabled_categories=self.config.disabled_categories,
        )
