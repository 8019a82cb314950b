"""Storage collaborator: SQLAlchemy models, engine helpers and the review store."""

from .database import create_db_engine, init_db, session_scope
from .models import Base, ReviewHistoryRow, ReviewItemRow
from .store import ReviewHistoryRecord, ReviewRepository, ReviewStore

__all__ = [
    "Base",
    "ReviewItemRow",
    "ReviewHistoryRow",
    "ReviewHistoryRecord",
    "ReviewRepository",
    "ReviewStore",
    "create_db_engine",
    "init_db",
    "session_scope",
]
