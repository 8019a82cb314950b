"""
Recall scheduling engine.

Pure, I/O-free spaced repetition core:

Components:
- Grade / ItemState / Direction / ReviewItem: data model
- SchedulerConfig: tunable steps, intervals and ease settings
- ReviewItemStateMachine / apply_grade: per-item transition function
- new_cards_introduced_today: derived daily new-card count
- QueueBuilder / build_queue: daily session assembly
"""

from .config import DEFAULT_CONFIG, SchedulerConfig
from .daily_limit import new_cards_introduced_from_log, new_cards_introduced_today, utc_day
from .errors import (
    ConfigurationError,
    ConflictError,
    InvalidGrade,
    InvalidState,
    ItemNotFound,
    SchedulingError,
)
from .models import (
    Direction,
    Grade,
    ItemState,
    ReviewItem,
    ensure_utc,
    new_review_items,
    utc_now,
)
from .queue_builder import QueueBuilder, QueueConfig, QueueStats, build_queue
from .state_machine import ReviewItemStateMachine, apply_grade

__all__ = [
    # Data model
    "Direction",
    "Grade",
    "ItemState",
    "ReviewItem",
    "new_review_items",
    "ensure_utc",
    "utc_now",
    # Configuration
    "DEFAULT_CONFIG",
    "SchedulerConfig",
    "QueueConfig",
    # Scheduling
    "ReviewItemStateMachine",
    "apply_grade",
    "new_cards_introduced_today",
    "new_cards_introduced_from_log",
    "utc_day",
    "QueueBuilder",
    "QueueStats",
    "build_queue",
    # Errors
    "SchedulingError",
    "InvalidGrade",
    "InvalidState",
    "ConfigurationError",
    "ConflictError",
    "ItemNotFound",
]
