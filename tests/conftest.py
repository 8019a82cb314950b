"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from recall.scheduling import Direction, ItemState, ReviewItem, SchedulerConfig  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory SQLite)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed review time, mid-day UTC so day boundaries are far away."""
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def config():
    """Scheduler configuration with the default learning steps [1m, 10m]."""
    return SchedulerConfig()


@pytest.fixture
def make_item(now):
    """Factory for review items with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "id": f"item-{counter['n']:03d}",
            "card_id": f"card-{counter['n']:03d}",
            "user_id": "learner-1",
            "direction": Direction.FRONT_TO_BACK,
            "due_date": now,
            "state": ItemState.NEW,
            "created_at": now - timedelta(days=30),
        }
        fields.update(overrides)
        return ReviewItem(**fields)

    return _make


@pytest.fixture
def store():
    """Review store on a private in-memory SQLite database."""
    from recall.db.store import ReviewStore

    review_store = ReviewStore("sqlite://")
    yield review_store
    review_store.close()
