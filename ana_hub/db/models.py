"""
SQLAlchemy models for Ana Hub.
"""

from typing import Any, Dict

from sqlalchemy import (
    Column, String, DateTime, Text, Integer, ForeignKey, Index, CheckConstraint
)
from sqlalchemy.sql import func

from .base import Base


def _iso(value) -> Any:
    return value.isoformat() if value else None


class BoardModel(Base):
    """SQLAlchemy model for boards."""

    __tablename__ = "boards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "created_at": _iso(self.created_at),
        }


class CardModel(Base):
    """SQLAlchemy model for cards."""

    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    board_id = Column(Integer, ForeignKey("boards.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    column = Column(String(20), nullable=False, default="todo")
    agent = Column(String(100), nullable=True)
    tokens = Column(Integer, nullable=False, default=0)
    start_at = Column(DateTime(timezone=True), nullable=True)
    end_at = Column(DateTime(timezone=True), nullable=True)
    tags = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        CheckConstraint(
            "\"column\" IN ('ideas', 'todo', 'inprogress', 'completed')",
            name="ck_cards_column",
        ),
        CheckConstraint("tokens >= 0", name="ck_cards_tokens_non_negative"),
        Index("ix_cards_board_updated", "board_id", "updated_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "board_id": self.board_id,
            "title": self.title,
            "description": self.description,
            "column": self.column,
            "agent": self.agent,
            "tokens": self.tokens,
            "start_at": _iso(self.start_at),
            "end_at": _iso(self.end_at),
            "tags": self.tags,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class CommentModel(Base):
    """SQLAlchemy model for card comments.

    card_id is intentionally not a foreign key: a comment event may land
    after its card was deleted.
    """

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(Integer, nullable=False, index=True)
    author = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    source = Column(String(50), nullable=False, default="web")
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "card_id": self.card_id,
            "author": self.author,
            "content": self.content,
            "source": self.source,
            "created_at": _iso(self.created_at),
        }


class BoardShareModel(Base):
    """SQLAlchemy model for board share tokens."""

    __tablename__ = "board_shares"

    id = Column(Integer, primary_key=True, autoincrement=True)
    board_id = Column(Integer, ForeignKey("boards.id"), nullable=False, index=True)
    token = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "board_id": self.board_id,
            "token": self.token,
            "created_at": _iso(self.created_at),
        }


class ProcessedEventModel(Base):
    """Ledger of applied event ids, used to drop redelivered events."""

    __tablename__ = "processed_events"

    event_id = Column(String(255), primary_key=True)
    type = Column(String(50), nullable=False)
    source = Column(String(100), nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "event_id": self.event_id,
            "type": self.type,
            "source": self.source,
            "applied_at": _iso(self.applied_at),
        }


class RelayAttemptModel(Base):
    """Failed delivery bookkeeping for one relay unit."""

    __tablename__ = "relay_attempts"

    unit_id = Column(String(255), primary_key=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    dead_lettered_at = Column(DateTime(timezone=True), nullable=True, index=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "unit_id": self.unit_id,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "last_attempt_at": _iso(self.last_attempt_at),
            "dead_lettered_at": _iso(self.dead_lettered_at),
        }
