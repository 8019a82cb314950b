"""
Storage Models.

SQLAlchemy models backing the review store:
- Review items (one row per learner/card/direction, with a version token)
- Review history log (one row per graded review)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ReviewItemRow(Base):
    """
    Persisted memory state of one (card, direction) pair.

    `version` increases on every write; updates are conditional on the
    version the writer read.
    """

    __tablename__ = "review_items"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    card_id: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[str] = mapped_column(Text, nullable=False)

    # Scheduling state
    state: Mapped[str] = mapped_column(Text, nullable=False, default="NEW")
    interval: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    step_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_reviewed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    introduced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Denormalized card data
    category: Mapped[str | None] = mapped_column(Text)

    # Bookkeeping
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "card_id", "direction", name="uq_review_item_card_direction"),
        Index("idx_review_items_user_state_due", "user_id", "state", "due_date"),
    )

    def __repr__(self) -> str:
        return f"<ReviewItemRow id={self.id} state={self.state} due={self.due_date} v{self.version}>"


class ReviewHistoryRow(Base):
    """A single graded review, with before/after scheduling values."""

    __tablename__ = "review_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    review_item_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    state_before: Mapped[str] = mapped_column(Text, nullable=False)
    state_after: Mapped[str] = mapped_column(Text, nullable=False)
    interval_before: Mapped[float] = mapped_column(Float, nullable=False)
    interval_after: Mapped[float] = mapped_column(Float, nullable=False)
    ease_factor_before: Mapped[float] = mapped_column(Float, nullable=False)
    ease_factor_after: Mapped[float] = mapped_column(Float, nullable=False)

    reviewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    review_day: Mapped[str] = mapped_column(Text, nullable=False)  # UTC YYYY-MM-DD

    __table_args__ = (Index("idx_review_history_user_day", "user_id", "review_day"),)

    def __repr__(self) -> str:
        return f"<ReviewHistoryRow item={self.review_item_id} grade={self.grade} at={self.reviewed_at}>"
