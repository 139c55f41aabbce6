"""
Database package for Ana Hub.
"""

from .base import (
    Base,
    create_tables,
    get_db,
    get_engine,
    get_session_local,
    init_database,
)
from .models import (
    BoardModel,
    BoardShareModel,
    CardModel,
    CommentModel,
    ProcessedEventModel,
    RelayAttemptModel,
)

__all__ = [
    "Base",
    "create_tables",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
    "BoardModel",
    "BoardShareModel",
    "CardModel",
    "CommentModel",
    "ProcessedEventModel",
    "RelayAttemptModel",
]
