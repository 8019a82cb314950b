"""
Integration tests for ReviewService.

Runs the full grade-submission path (load, transition, conditional save,
history) against an in-memory store, including the retry on conflicts.
"""

from datetime import timedelta

import pytest

from recall.db.store import ReviewStore
from recall.scheduling import (
    ConflictError,
    Grade,
    InvalidGrade,
    ItemNotFound,
    ItemState,
    QueueConfig,
    SchedulerConfig,
    apply_grade,
)
from recall.service import ReviewService


class RacingStore(ReviewStore):
    """Store where another writer updates the item just before our save."""

    def __init__(self, url: str, races: int):
        super().__init__(url)
        self.races = races
        self.saves = 0

    def record_review(self, before, after, grade, duration_ms=0):
        self.saves += 1
        if self.races > 0:
            self.races -= 1
            current = self.load_item(before.user_id, before.id)
            self.save_item(apply_grade(current, Grade.AGAIN, after.last_reviewed), current.version)
        return super().record_review(before, after, grade, duration_ms)


@pytest.fixture
def service(store):
    return ReviewService(store, queue_config=QueueConfig(new_cards_per_day=2))


class TestSubmitReview:
    def test_new_item_good(self, service, now):
        item = service.add_card("card-1", "learner-1", now=now)[0]

        outcome = service.submit_review("learner-1", item.id, "good", duration_ms=800, now=now)

        assert outcome.state == ItemState.LEARNING
        assert outcome.next_review == now + timedelta(minutes=10)
        assert outcome.attempts == 1
        assert outcome.item.version == 1
        assert service.store.count_new_introduced_today("learner-1", now) == 1

    def test_graduation_to_review(self, service, now):
        item = service.add_card("card-1", "learner-1", now=now)[0]

        service.submit_review("learner-1", item.id, Grade.GOOD, now=now)
        outcome = service.submit_review("learner-1", item.id, 3, now=now + timedelta(minutes=10))

        assert outcome.state == ItemState.REVIEW
        assert outcome.interval_days == 1.0
        assert outcome.next_review == now + timedelta(minutes=10, days=1)

    def test_unknown_item(self, service, now):
        with pytest.raises(ItemNotFound):
            service.submit_review("learner-1", "nope", Grade.GOOD, now=now)

    def test_other_learners_item(self, service, now):
        item = service.add_card("card-1", "learner-1", now=now)[0]

        with pytest.raises(ItemNotFound):
            service.submit_review("learner-2", item.id, Grade.GOOD, now=now)

    @pytest.mark.parametrize("grade", [1, 7, "perfect"])
    def test_invalid_grade_leaves_item_untouched(self, service, now, grade):
        item = service.add_card("card-1", "learner-1", now=now)[0]

        with pytest.raises(InvalidGrade):
            service.submit_review("learner-1", item.id, grade, now=now)

        assert service.store.load_item("learner-1", item.id) == item
        assert service.store.count_reviews("learner-1") == 0

    def test_negative_duration(self, service, now):
        item = service.add_card("card-1", "learner-1", now=now)[0]

        with pytest.raises(ValueError):
            service.submit_review("learner-1", item.id, Grade.GOOD, duration_ms=-1, now=now)

    def test_max_attempts_must_be_positive(self, store):
        with pytest.raises(ValueError):
            ReviewService(store, max_attempts=0)


class TestConflictRetry:
    def test_retries_after_losing_a_race(self, now):
        store = RacingStore("sqlite://", races=1)
        service = ReviewService(store, max_attempts=3)
        item = service.add_card("card-1", "learner-1", now=now)[0]

        outcome = service.submit_review("learner-1", item.id, Grade.EASY, now=now)

        assert outcome.attempts == 2
        assert store.saves == 2
        assert outcome.state == ItemState.REVIEW
        assert outcome.item.version == 2
        # Recomputed from the racing writer's state
        history = store.load_history("learner-1")
        assert [h.state_before for h in history] == [ItemState.LEARNING]
        store.close()

    def test_gives_up_after_max_attempts(self, now):
        store = RacingStore("sqlite://", races=5)
        service = ReviewService(store, max_attempts=2)
        item = service.add_card("card-1", "learner-1", now=now)[0]

        with pytest.raises(ConflictError):
            service.submit_review("learner-1", item.id, Grade.GOOD, now=now)

        assert store.saves == 2
        assert store.count_reviews("learner-1") == 0
        store.close()

    def test_single_attempt_reraises_the_conflict(self, now):
        store = RacingStore("sqlite://", races=1)
        service = ReviewService(store, max_attempts=1)
        item = service.add_card("card-1", "learner-1", now=now)[0]

        with pytest.raises(ConflictError) as exc_info:
            service.submit_review("learner-1", item.id, Grade.GOOD, now=now)

        assert exc_info.value.item_id == item.id
        assert exc_info.value.expected_version == 0
        assert exc_info.value.actual_version == 1
        assert store.saves == 1
        store.close()


class TestQueueFlow:
    def test_daily_cap_after_reviews(self, service, now):
        for n in range(3):
            service.add_card(f"card-{n}", "learner-1", now=now - timedelta(days=1))

        queue, stats = service.get_queue("learner-1", now=now)
        assert len(queue) == 2
        assert stats.new_remaining_today == 0

        for item in queue:
            service.submit_review("learner-1", item.id, Grade.GOOD, now=now)

        queue, stats = service.get_queue("learner-1", now=now)
        assert queue == []
        assert stats.learning_count == 2

        # Learning steps come due later today; no further new cards
        later = now + timedelta(minutes=10)
        queue, _ = service.get_queue("learner-1", now=later)
        assert len(queue) == 2
        assert all(i.state == ItemState.LEARNING for i in queue)

        queue, _ = service.get_queue("learner-1", extra_new=1, now=later)
        assert len(queue) == 3

    def test_reset_today_restores_allowance(self, service, now):
        items = service.add_card("card-1", "learner-1", now=now - timedelta(days=1))
        for item in items:
            service.submit_review("learner-1", item.id, Grade.GOOD, now=now)

        assert service.reset_today("learner-1", now=now) == 2

        queue, stats = service.get_queue("learner-1", now=now)
        assert {i.id for i in queue} == {i.id for i in items}
        assert stats.new_remaining_today == 0

    def test_custom_scheduler_config(self, store, now):
        service = ReviewService(store, scheduler_config=SchedulerConfig(learning_steps=(5.0,)))
        item = service.add_card("card-1", "learner-1", now=now)[0]

        outcome = service.submit_review("learner-1", item.id, Grade.AGAIN, now=now)

        assert outcome.next_review == now + timedelta(minutes=5)
