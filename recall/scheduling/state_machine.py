"""
SM-2 Review State Machine with Anki-style learning steps.

Implements:
- Step progression for NEW/LEARNING and RELEARNING items
- Graduation into REVIEW (GOOD on the last step, or EASY at any step)
- SM-2 interval growth with ease adjustment for REVIEW items
- Lapses: REVIEW + AGAIN drops the item into RELEARNING

Grade scale:
AGAIN (0) - Forgot, restart the steps
HARD (2)  - Recalled with difficulty, repeat the current step
GOOD (3)  - Recalled, advance one step (or grow the interval)
EASY (4)  - Instant recall, graduate immediately (or grow with a bonus)

The machine is a pure function of (item, grade, now, config). It never
mutates the item it is given and never performs I/O.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from loguru import logger

from .config import DEFAULT_CONFIG, SchedulerConfig
from .errors import InvalidGrade, InvalidState
from .models import Grade, ItemState, ReviewItem, ensure_utc


class ReviewItemStateMachine:
    """
    Applies a learner's grade to a review item.

    Each item carries:
    - State: NEW -> LEARNING -> REVIEW <-> RELEARNING
    - Step index: position in the (re)learning steps
    - Interval: days until the next review once in REVIEW
    - Ease factor: interval growth multiplier (floor at min_ease)
    """

    def __init__(self, config: SchedulerConfig | None = None):
        """
        Initialize the state machine.

        Args:
            config: Scheduler configuration (uses defaults if None)

        Raises:
            ConfigurationError: if the configuration is unusable
        """
        self.config = (config or DEFAULT_CONFIG).validate()

    def apply(self, item: ReviewItem, grade: Grade, now: datetime) -> ReviewItem:
        """
        Calculate the next state of an item after a review.

        Args:
            item: Current item state (left untouched)
            grade: Learner's response
            now: Time of the review

        Returns:
            New ReviewItem with updated state, interval, ease and due date

        Raises:
            InvalidGrade: grade outside the enumeration
            InvalidState: unknown state, negative interval, or step index
                out of range
            ConfigurationError: empty step sequence for the item's state
        """
        if not isinstance(grade, Grade):
            raise InvalidGrade(f"Invalid grade: {grade!r}")

        state = ItemState.coerce(item.state)
        if item.interval < 0:
            raise InvalidState(f"Item {item.id} has negative interval {item.interval}")

        now = ensure_utc(now)
        current = replace(item, state=state, last_reviewed=now)

        if state == ItemState.NEW:
            # First presentation: the learning steps start at step 0
            current = replace(current, step_index=0, introduced_at=now)
            result = self._schedule_steps(current, grade, now, ItemState.LEARNING)
        elif state == ItemState.LEARNING:
            result = self._schedule_steps(current, grade, now, ItemState.LEARNING)
        elif state == ItemState.RELEARNING:
            result = self._schedule_steps(current, grade, now, ItemState.RELEARNING)
        elif state == ItemState.REVIEW:
            result = self._schedule_review(current, grade, now)
        else:
            raise InvalidState(f"Unhandled item state: {state!r}")

        # Ease floor holds even for items persisted with a corrupt ease
        if result.ease_factor < self.config.min_ease:
            result = replace(result, ease_factor=self.config.min_ease)

        logger.debug(
            f"Graded {item.id}: {grade.name} {state.value} -> {result.state.value} "
            f"(step={result.step_index}, interval={result.interval:.2f}d, "
            f"ease={result.ease_factor:.2f}, due={result.due_date.isoformat()})"
        )
        return result

    # =========================================================================
    # Learning / Relearning
    # =========================================================================

    def _schedule_steps(
        self,
        item: ReviewItem,
        grade: Grade,
        now: datetime,
        state: ItemState,
    ) -> ReviewItem:
        """Step progression shared by LEARNING and RELEARNING."""
        steps = self.config.steps_for(state)
        index = item.step_index

        if not 0 <= index < len(steps):
            raise InvalidState(
                f"Item {item.id} has step_index {index} outside "
                f"{state.value.lower()} steps of length {len(steps)}"
            )

        if grade == Grade.AGAIN:
            return self._at_step(item, state, 0, now)

        if grade == Grade.HARD:
            return self._at_step(item, state, index, now)

        if grade == Grade.GOOD:
            if index + 1 < len(steps):
                return self._at_step(item, state, index + 1, now)
            return self._graduate(item, grade, now, state)

        if grade == Grade.EASY:
            return self._graduate(item, grade, now, state)

        raise InvalidGrade(f"Unhandled grade: {grade!r}")

    def _at_step(self, item: ReviewItem, state: ItemState, index: int, now: datetime) -> ReviewItem:
        return replace(
            item,
            state=state,
            step_index=index,
            due_date=now + self.config.step_delay(state, index),
        )

    def _graduate(
        self,
        item: ReviewItem,
        grade: Grade,
        now: datetime,
        state: ItemState,
    ) -> ReviewItem:
        """
        Move a (re)learning item into REVIEW.

        First graduation uses the graduating interval (with the easy bonus on
        EASY). After a lapse the item keeps part of its prior interval.
        """
        cfg = self.config

        if state == ItemState.RELEARNING:
            interval = max(cfg.graduating_interval, item.interval * cfg.relearn_interval_factor)
        elif grade == Grade.EASY:
            interval = cfg.graduating_interval * cfg.easy_bonus
        else:
            interval = cfg.graduating_interval

        interval = self._cap(interval)
        return replace(
            item,
            state=ItemState.REVIEW,
            interval=interval,
            repetitions=1,
            step_index=0,
            due_date=now + timedelta(days=interval),
        )

    # =========================================================================
    # Review (SM-2)
    # =========================================================================

    def _schedule_review(self, item: ReviewItem, grade: Grade, now: datetime) -> ReviewItem:
        cfg = self.config
        ease = item.ease_factor
        base = item.interval * cfg.interval_modifier

        if grade == Grade.AGAIN:
            # Lapse: interval is kept and scaled down when relearning completes
            return replace(
                item,
                state=ItemState.RELEARNING,
                ease_factor=max(cfg.min_ease, ease - cfg.lapse_ease_delta),
                repetitions=0,
                step_index=0,
                due_date=now + self.config.step_delay(ItemState.RELEARNING, 0),
            )

        if grade == Grade.HARD:
            interval = self._cap(base * cfg.hard_interval_factor)
            return self._in_review(
                item,
                now,
                interval=interval,
                ease_factor=max(cfg.min_ease, ease - cfg.ease_delta / 2),
                repetitions=item.repetitions,
            )

        if grade == Grade.GOOD:
            interval = self._grow(item.interval, base * ease)
            return self._in_review(
                item,
                now,
                interval=interval,
                ease_factor=ease,
                repetitions=item.repetitions + 1,
            )

        if grade == Grade.EASY:
            interval = self._grow(item.interval, base * ease * cfg.easy_bonus)
            return self._in_review(
                item,
                now,
                interval=interval,
                ease_factor=ease + cfg.ease_delta,
                repetitions=item.repetitions + 1,
            )

        raise InvalidGrade(f"Unhandled grade: {grade!r}")

    def _in_review(
        self,
        item: ReviewItem,
        now: datetime,
        interval: float,
        ease_factor: float,
        repetitions: int,
    ) -> ReviewItem:
        return replace(
            item,
            state=ItemState.REVIEW,
            interval=interval,
            ease_factor=ease_factor,
            repetitions=repetitions,
            step_index=0,
            due_date=now + timedelta(days=interval),
        )

    def _cap(self, interval: float) -> float:
        """Cap interval at maximum to prevent extremely long intervals."""
        return min(interval, self.config.maximum_interval)

    def _grow(self, previous: float, proposed: float) -> float:
        """Capped growth that never shrinks a successful interval."""
        return max(previous, self._cap(proposed))


def apply_grade(
    item: ReviewItem,
    grade: Grade,
    now: datetime,
    config: SchedulerConfig | None = None,
) -> ReviewItem:
    """
    Apply a grade to an item and return its next state.

    Convenience wrapper around ReviewItemStateMachine for one-off calls.
    """
    return ReviewItemStateMachine(config).apply(item, grade, now)
