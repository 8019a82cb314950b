"""
SQL Review Store for recall.

Provides persistence for:
- Review item state per (card, direction), with optimistic versioning
- Review history log for the daily new-card count and analytics
- The administrative "reset today" operation

Any SQLAlchemy URL works; the CLI defaults to ~/.recall/recall.db.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from loguru import logger
from sqlalchemy import Engine, delete, func, select, update
from sqlalchemy.orm import Session

from recall.db.database import create_db_engine, init_db, make_session_factory, session_scope
from recall.db.models import ReviewHistoryRow, ReviewItemRow
from recall.scheduling.daily_limit import new_cards_introduced_from_log, utc_day
from recall.scheduling.errors import ConflictError
from recall.scheduling.models import (
    Direction,
    Grade,
    ItemState,
    ReviewItem,
    ensure_utc,
    new_review_items,
    utc_now,
)

# =============================================================================
# Contract
# =============================================================================


class ReviewRepository(Protocol):
    """Storage contract the scheduling callers depend on."""

    def load_all_items(self, user_id: str) -> list[ReviewItem]: ...

    def load_item(self, user_id: str, item_id: str) -> ReviewItem | None: ...

    def save_item(self, item: ReviewItem, expected_version: int) -> ReviewItem: ...

    def delete_todays_history(self, user_id: str, now: datetime | None = None) -> int: ...


@dataclass
class ReviewHistoryRecord:
    """A single review event."""

    id: int
    review_item_id: str
    user_id: str
    grade: Grade
    duration_ms: int
    state_before: ItemState
    state_after: ItemState
    interval_before: float
    interval_after: float
    ease_factor_before: float
    ease_factor_after: float
    reviewed_at: datetime


# =============================================================================
# Row mapping
# =============================================================================


def _to_item(row: ReviewItemRow) -> ReviewItem:
    return ReviewItem(
        id=row.id,
        card_id=row.card_id,
        user_id=row.user_id,
        direction=Direction(row.direction),
        due_date=ensure_utc(row.due_date),
        state=ItemState.coerce(row.state),
        interval=row.interval,
        ease_factor=row.ease_factor,
        repetitions=row.repetitions,
        step_index=row.step_index,
        last_reviewed=ensure_utc(row.last_reviewed) if row.last_reviewed else None,
        introduced_at=ensure_utc(row.introduced_at) if row.introduced_at else None,
        category=row.category,
        created_at=ensure_utc(row.created_at),
        version=row.version,
    )


def _state_values(item: ReviewItem) -> dict[str, object]:
    """Columns written when an item's scheduling state changes."""
    return {
        "state": ItemState.coerce(item.state).value,
        "interval": item.interval,
        "ease_factor": item.ease_factor,
        "repetitions": item.repetitions,
        "step_index": item.step_index,
        "due_date": ensure_utc(item.due_date),
        "last_reviewed": ensure_utc(item.last_reviewed) if item.last_reviewed else None,
        "introduced_at": ensure_utc(item.introduced_at) if item.introduced_at else None,
    }


def _to_history(row: ReviewHistoryRow) -> ReviewHistoryRecord:
    return ReviewHistoryRecord(
        id=row.id,
        review_item_id=row.review_item_id,
        user_id=row.user_id,
        grade=Grade(row.grade),
        duration_ms=row.duration_ms,
        state_before=ItemState.coerce(row.state_before),
        state_after=ItemState.coerce(row.state_after),
        interval_before=row.interval_before,
        interval_after=row.interval_after,
        ease_factor_before=row.ease_factor_before,
        ease_factor_after=row.ease_factor_after,
        reviewed_at=ensure_utc(row.reviewed_at),
    )


# =============================================================================
# Review Store
# =============================================================================


class ReviewStore:
    """
    SQLAlchemy-backed review item persistence.

    Handles:
    - Item creation (one NEW item per direction of a card)
    - Conditional saves keyed on the item's version
    - Review history logging and today's-history reset
    """

    def __init__(self, engine: Engine | str, default_ease: float = 2.5):
        """
        Initialize the review store.

        Args:
            engine: SQLAlchemy engine or database URL
            default_ease: Ease assigned to items reset back to NEW
        """
        self.engine = create_db_engine(engine) if isinstance(engine, str) else engine
        self.default_ease = default_ease
        self._sessions = make_session_factory(self.engine)
        init_db(self.engine)

    # =========================================================================
    # Item Operations
    # =========================================================================

    def create_items_for_card(
        self,
        card_id: str,
        user_id: str,
        now: datetime | None = None,
        category: str | None = None,
    ) -> list[ReviewItem]:
        """
        Create the NEW review items for a card.

        Existing items for the card are returned unchanged instead.
        """
        now = ensure_utc(now or utc_now())

        with session_scope(self._sessions) as session:
            existing = session.scalars(
                select(ReviewItemRow).where(
                    ReviewItemRow.user_id == user_id,
                    ReviewItemRow.card_id == card_id,
                )
            ).all()
            if existing:
                logger.info(f"Card {card_id} already has {len(existing)} review items")
                return [_to_item(row) for row in existing]

            items = new_review_items(
                card_id, user_id, now, default_ease=self.default_ease, category=category
            )
            for item in items:
                session.add(
                    ReviewItemRow(
                        id=item.id,
                        user_id=item.user_id,
                        card_id=item.card_id,
                        direction=item.direction.value,
                        category=item.category,
                        version=item.version,
                        created_at=item.created_at,
                        updated_at=now,
                        **_state_values(item),
                    )
                )

        logger.debug(f"Created {len(items)} review items for card {card_id}")
        return items

    def load_all_items(self, user_id: str) -> list[ReviewItem]:
        """Get every review item for a learner."""
        with session_scope(self._sessions) as session:
            rows = session.scalars(
                select(ReviewItemRow)
                .where(ReviewItemRow.user_id == user_id)
                .order_by(ReviewItemRow.due_date, ReviewItemRow.id)
            ).all()
            return [_to_item(row) for row in rows]

    def load_item(self, user_id: str, item_id: str) -> ReviewItem | None:
        """Get one review item, or None if the learner has no such item."""
        with session_scope(self._sessions) as session:
            row = session.scalars(
                select(ReviewItemRow).where(
                    ReviewItemRow.user_id == user_id,
                    ReviewItemRow.id == item_id,
                )
            ).first()
            return _to_item(row) if row else None

    def save_item(self, item: ReviewItem, expected_version: int) -> ReviewItem:
        """
        Save an item's scheduling state if nobody else wrote it first.

        Args:
            item: Updated item
            expected_version: Version the item had when it was read

        Returns:
            The saved item carrying its new version

        Raises:
            ConflictError: the stored version differs from expected_version
        """
        with session_scope(self._sessions) as session:
            return self._conditional_update(session, item, expected_version)

    def record_review(
        self,
        before: ReviewItem,
        after: ReviewItem,
        grade: Grade,
        duration_ms: int = 0,
    ) -> ReviewItem:
        """
        Save a graded item and append its history entry in one transaction.

        Raises:
            ConflictError: the item changed since `before` was read
        """
        reviewed_at = ensure_utc(after.last_reviewed or utc_now())

        with session_scope(self._sessions) as session:
            saved = self._conditional_update(session, after, before.version)
            session.add(
                ReviewHistoryRow(
                    user_id=before.user_id,
                    review_item_id=before.id,
                    grade=grade.value,
                    duration_ms=duration_ms,
                    state_before=ItemState.coerce(before.state).value,
                    state_after=ItemState.coerce(after.state).value,
                    interval_before=before.interval,
                    interval_after=after.interval,
                    ease_factor_before=before.ease_factor,
                    ease_factor_after=after.ease_factor,
                    reviewed_at=reviewed_at,
                    review_day=utc_day(reviewed_at).isoformat(),
                )
            )
        return saved

    def _conditional_update(
        self,
        session: Session,
        item: ReviewItem,
        expected_version: int,
    ) -> ReviewItem:
        new_version = expected_version + 1
        result = session.execute(
            update(ReviewItemRow)
            .where(
                ReviewItemRow.id == item.id,
                ReviewItemRow.user_id == item.user_id,
                ReviewItemRow.version == expected_version,
            )
            .values(version=new_version, updated_at=utc_now(), **_state_values(item))
        )

        if result.rowcount != 1:
            actual = session.scalar(
                select(ReviewItemRow.version).where(ReviewItemRow.id == item.id)
            )
            logger.warning(
                f"Conditional save rejected for {item.id}: "
                f"expected v{expected_version}, stored v{actual}"
            )
            raise ConflictError(item.id, expected_version, actual)

        return replace(item, version=new_version)

    # =========================================================================
    # History Operations
    # =========================================================================

    def load_history(self, user_id: str, day: str | None = None) -> list[ReviewHistoryRecord]:
        """
        Get review history for a learner.

        Args:
            user_id: The learner
            day: Optional UTC date (YYYY-MM-DD) to restrict to

        Returns:
            History records, oldest first
        """
        query = select(ReviewHistoryRow).where(ReviewHistoryRow.user_id == user_id)
        if day is not None:
            query = query.where(ReviewHistoryRow.review_day == day)

        with session_scope(self._sessions) as session:
            rows = session.scalars(
                query.order_by(ReviewHistoryRow.reviewed_at, ReviewHistoryRow.id)
            ).all()
            return [_to_history(row) for row in rows]

    def count_new_introduced_today(self, user_id: str, now: datetime | None = None) -> int:
        """Count today's history entries that took an item out of NEW."""
        now = ensure_utc(now or utc_now())
        entries = self.load_history(user_id, day=utc_day(now).isoformat())
        return new_cards_introduced_from_log(entries, now)

    def count_reviews(self, user_id: str) -> int:
        with session_scope(self._sessions) as session:
            return session.scalar(
                select(func.count()).select_from(ReviewHistoryRow).where(
                    ReviewHistoryRow.user_id == user_id
                )
            ) or 0

    def delete_todays_history(self, user_id: str, now: datetime | None = None) -> int:
        """
        Delete today's review history and send the reviewed items back to NEW.

        Administrative/debug operation. The daily new-card count is derived
        from history, so it drops accordingly with no counter to reset.

        Returns:
            Number of history entries deleted
        """
        now = ensure_utc(now or utc_now())
        day = utc_day(now).isoformat()

        with session_scope(self._sessions) as session:
            item_ids = set(
                session.scalars(
                    select(ReviewHistoryRow.review_item_id).where(
                        ReviewHistoryRow.user_id == user_id,
                        ReviewHistoryRow.review_day == day,
                    )
                ).all()
            )

            deleted = session.execute(
                delete(ReviewHistoryRow).where(
                    ReviewHistoryRow.user_id == user_id,
                    ReviewHistoryRow.review_day == day,
                )
            ).rowcount

            if item_ids:
                session.execute(
                    update(ReviewItemRow)
                    .where(
                        ReviewItemRow.user_id == user_id,
                        ReviewItemRow.id.in_(sorted(item_ids)),
                    )
                    .values(
                        state=ItemState.NEW.value,
                        interval=0.0,
                        ease_factor=self.default_ease,
                        repetitions=0,
                        step_index=0,
                        due_date=now,
                        last_reviewed=None,
                        introduced_at=None,
                        version=ReviewItemRow.version + 1,
                        updated_at=now,
                    )
                )

        logger.info(
            f"Reset today's reviews for {user_id}: {deleted} history entries deleted, "
            f"{len(item_ids)} items back to NEW"
        )
        return deleted

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
