"""
Configuration settings for recall.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is prefixed with RECALL_, e.g. RECALL_DATABASE_URL or
RECALL_LEARNING_STEPS="1,10".
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from recall.scheduling.config import SchedulerConfig
from recall.scheduling.errors import ConfigurationError
from recall.scheduling.queue_builder import QueueConfig

DEFAULT_DB_PATH = Path.home() / ".recall" / "recall.db"


def _parse_csv_floats(name: str, raw: str) -> tuple[float, ...]:
    try:
        return tuple(float(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a comma-separated list of numbers, got {raw!r}") from None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RECALL_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default=f"sqlite:///{DEFAULT_DB_PATH}",
        description="SQLAlchemy connection string for review items and history",
    )
    save_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Read-recompute-save attempts when a grade submission conflicts",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Daily Queue
    # ========================================
    default_user: str = Field(
        default="default",
        description="Learner id used by the CLI when --user is not given",
    )
    new_cards_per_day: int = Field(
        default=20,
        ge=0,
        description="Maximum new items introduced per UTC day",
    )
    disabled_categories: str = Field(
        default="",
        description="Comma-separated categories whose new items are not introduced",
    )

    # ========================================
    # Scheduler (SM-2 with learning steps)
    # ========================================
    learning_steps: str = Field(
        default="1,10",
        description="Learning steps in minutes (comma-separated)",
    )
    relearning_steps: str = Field(
        default="10",
        description="Relearning steps in minutes (comma-separated)",
    )
    graduating_interval: float = Field(
        default=1.0,
        description="Interval in days when an item first graduates to review",
    )
    easy_bonus: float = Field(
        default=1.3,
        description="Interval multiplier applied on EASY",
    )
    hard_interval_factor: float = Field(
        default=1.2,
        description="Interval multiplier applied on HARD in review",
    )
    min_ease: float = Field(
        default=1.3,
        description="Ease factor floor",
    )
    default_ease: float = Field(
        default=2.5,
        description="Starting ease factor for new items",
    )
    ease_delta: float = Field(
        default=0.15,
        description="Ease change on EASY (+) and half of it on HARD (-)",
    )
    lapse_ease_delta: float = Field(
        default=0.2,
        description="Ease subtracted when a review item lapses",
    )
    relearn_interval_factor: float = Field(
        default=0.5,
        description="Fraction of the pre-lapse interval kept after relearning",
    )
    interval_modifier: float = Field(
        default=1.0,
        description="Multiplier applied to every review interval (below 1.0 reviews more often)",
    )
    maximum_interval: float = Field(
        default=36500.0,
        description="Maximum interval in days",
    )

    def scheduler_config(self) -> SchedulerConfig:
        """
        Build and validate the scheduler configuration.

        Raises:
            ConfigurationError: if any value is unusable
        """
        return SchedulerConfig(
            learning_steps=_parse_csv_floats("learning_steps", self.learning_steps),
            relearning_steps=_parse_csv_floats("relearning_steps", self.relearning_steps),
            graduating_interval=self.graduating_interval,
            easy_bonus=self.easy_bonus,
            hard_interval_factor=self.hard_interval_factor,
            min_ease=self.min_ease,
            default_ease=self.default_ease,
            ease_delta=self.ease_delta,
            lapse_ease_delta=self.lapse_ease_delta,
            relearn_interval_factor=self.relearn_interval_factor,
            interval_modifier=self.interval_modifier,
            maximum_interval=self.maximum_interval,
        ).validate()

    def queue_config(self) -> QueueConfig:
        """Get daily queue configuration."""
        return QueueConfig(
            new_cards_per_day=self.new_cards_per_day,
            disabled_categories=frozenset(
                c.strip() for c in self.disabled_categories.split(",") if c.strip()
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
