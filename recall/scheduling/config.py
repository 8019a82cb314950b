"""
Scheduler configuration.

Learning and relearning steps are expressed in minutes, intervals in days.
The defaults are the usual Anki-style values and are meant to be tuned.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import timedelta

from .errors import ConfigurationError
from .models import ItemState


@dataclass(frozen=True)
class SchedulerConfig:
    """Configuration for the review state machine."""

    learning_steps: tuple[float, ...] = (1.0, 10.0)  # Minutes
    relearning_steps: tuple[float, ...] = (10.0,)  # Minutes
    graduating_interval: float = 1.0  # Days
    easy_bonus: float = 1.3
    hard_interval_factor: float = 1.2
    min_ease: float = 1.3
    default_ease: float = 2.5
    ease_delta: float = 0.15
    lapse_ease_delta: float = 0.2
    relearn_interval_factor: float = 0.5
    interval_modifier: float = 1.0  # Scales every REVIEW interval
    maximum_interval: float = 36500.0  # 100 years

    def __post_init__(self) -> None:
        # Accept lists from settings/JSON
        object.__setattr__(self, "learning_steps", tuple(float(s) for s in self.learning_steps))
        object.__setattr__(self, "relearning_steps", tuple(float(s) for s in self.relearning_steps))

    def validate(self) -> SchedulerConfig:
        """
        Check the whole configuration up front.

        Raises:
            ConfigurationError: on empty step sequences or non-positive
                multipliers/intervals

        Returns:
            self, so calls can be chained at startup
        """
        if not self.learning_steps:
            raise ConfigurationError("learning_steps must not be empty")
        if not self.relearning_steps:
            raise ConfigurationError("relearning_steps must not be empty")

        for name in ("learning_steps", "relearning_steps"):
            if any(step <= 0 for step in getattr(self, name)):
                raise ConfigurationError(f"{name} must contain only positive durations")

        for name in (
            "graduating_interval",
            "easy_bonus",
            "hard_interval_factor",
            "min_ease",
            "default_ease",
            "relearn_interval_factor",
            "interval_modifier",
            "maximum_interval",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")

        for name in ("ease_delta", "lapse_ease_delta"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")

        if self.default_ease < self.min_ease:
            raise ConfigurationError(
                f"default_ease ({self.default_ease}) is below min_ease ({self.min_ease})"
            )
        if self.maximum_interval < self.graduating_interval:
            raise ConfigurationError("maximum_interval must be at least graduating_interval")

        return self

    def steps_for(self, state: ItemState) -> tuple[float, ...]:
        """
        Step sequence (minutes) used while in `state`.

        NEW items are scheduled on the learning steps.

        Raises:
            ConfigurationError: if the sequence is empty
        """
        if state == ItemState.RELEARNING:
            steps = self.relearning_steps
            name = "relearning_steps"
        else:
            steps = self.learning_steps
            name = "learning_steps"

        if not steps:
            raise ConfigurationError(f"{name} must not be empty")
        return steps

    def step_delay(self, state: ItemState, index: int) -> timedelta:
        return timedelta(minutes=self.steps_for(state)[index])

    def as_dict(self) -> dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_CONFIG = SchedulerConfig()
