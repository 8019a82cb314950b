"""
Error taxonomy for the scheduling engine and its storage boundary.

InvalidGrade, InvalidState and ConfigurationError are programmer or data
errors and are never retried. ConflictError is raised only by storage when a
conditional write loses a race; callers recover by re-reading the item,
recomputing and saving again.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for every error raised by recall."""
    pass


class InvalidGrade(SchedulingError):
    """Raised when a grade value is outside the Grade enumeration."""
    pass


class InvalidState(SchedulingError):
    """Raised when a stored item has an unknown state or an out-of-range step index."""
    pass


class ConfigurationError(SchedulingError):
    """Raised when a SchedulerConfig (or the settings behind it) is unusable."""
    pass


class ConflictError(SchedulingError):
    """Raised when an optimistic-concurrency precondition fails on save."""

    def __init__(self, item_id: str, expected_version: int, actual_version: int | None = None):
        self.item_id = item_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Review item {item_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class ItemNotFound(SchedulingError):
    """Raised by the review service when an item does not exist for the user."""
    pass
