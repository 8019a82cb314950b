"""
Review service: glue between the scheduling engine and the review store.

The engine itself never retries. When a grade submission loses a race
(ConflictError from the store), this service re-reads the item, recomputes
the transition and tries the save again, up to `max_attempts` times.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from recall.db.store import ReviewStore
from recall.scheduling import (
    ConflictError,
    Grade,
    ItemNotFound,
    ItemState,
    QueueBuilder,
    QueueConfig,
    QueueStats,
    ReviewItem,
    ReviewItemStateMachine,
    SchedulerConfig,
    ensure_utc,
    utc_now,
)


@dataclass
class ReviewOutcome:
    """Result of a grade submission."""

    item: ReviewItem
    next_review: datetime
    interval_days: float
    state: ItemState
    attempts: int = 1


class ReviewService:
    """
    Runs review sessions against a store.

    Key operations:
    1. get_queue: today's queue for a learner
    2. submit_review: grade an item and persist it conditionally
    3. add_card / reset_today: item creation and administrative reset
    """

    def __init__(
        self,
        store: ReviewStore,
        scheduler_config: SchedulerConfig | None = None,
        queue_config: QueueConfig | None = None,
        max_attempts: int = 3,
    ):
        """
        Initialize the service.

        Args:
            store: Review store (storage collaborator)
            scheduler_config: State machine configuration
            queue_config: Daily queue configuration
            max_attempts: Save attempts per submission before giving up
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.store = store
        self.machine = ReviewItemStateMachine(scheduler_config)
        self.queue_builder = QueueBuilder(queue_config)
        self.max_attempts = max_attempts

    def add_card(
        self,
        card_id: str,
        user_id: str,
        category: str | None = None,
        now: datetime | None = None,
    ) -> list[ReviewItem]:
        """Create the review items for a new card."""
        return self.store.create_items_for_card(card_id, user_id, now=now, category=category)

    def get_queue(
        self,
        user_id: str,
        extra_new: int | None = 0,
        show_all: bool = False,
        now: datetime | None = None,
    ) -> tuple[list[ReviewItem], QueueStats]:
        """Build today's queue from the learner's stored items."""
        now = ensure_utc(now or utc_now())
        items = self.store.load_all_items(user_id)
        queue, stats = self.queue_builder.build(items, now, extra_new=extra_new, show_all=show_all)

        logger.info(
            f"Queue for {user_id}: {len(queue)} items "
            f"({stats.due_count} due, {stats.new_remaining_today} new remaining today)"
        )
        return queue, stats

    def submit_review(
        self,
        user_id: str,
        item_id: str,
        grade: Any,
        duration_ms: int = 0,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """
        Apply a grade to an item and persist the result.

        Args:
            user_id: The learner
            item_id: Review item being graded
            grade: Grade member, weight (0/2/3/4) or name
            duration_ms: Time the learner took to answer
            now: Review time (defaults to current UTC time)

        Returns:
            ReviewOutcome with the saved item and its next due date

        Raises:
            InvalidGrade: grade not in the enumeration
            ValueError: negative duration
            ItemNotFound: no such item for this learner
            InvalidState / ConfigurationError: from the state machine
            ConflictError: every attempt lost a concurrent write
        """
        parsed = Grade.parse(grade)
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")

        now = ensure_utc(now or utc_now())
        attempt = 0

        while True:
            attempt += 1
            item = self.store.load_item(user_id, item_id)
            if item is None:
                raise ItemNotFound(f"Review item {item_id} not found for user {user_id}")

            updated = self.machine.apply(item, parsed, now)

            try:
                saved = self.store.record_review(item, updated, parsed, duration_ms)
            except ConflictError:
                if attempt >= self.max_attempts:
                    logger.error(f"Giving up on {item_id} after {attempt} conflicting saves")
                    raise
                logger.warning(
                    f"Conflict saving {item_id} (attempt {attempt}/{self.max_attempts}), retrying"
                )
                continue

            return ReviewOutcome(
                item=saved,
                next_review=saved.due_date,
                interval_days=saved.interval,
                state=saved.state,
                attempts=attempt,
            )

    def reset_today(self, user_id: str, now: datetime | None = None) -> int:
        """Delete today's history for a learner. Returns the number of entries removed."""
        return self.store.delete_todays_history(user_id, now=now)
