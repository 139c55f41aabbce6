"""
Database services for Ana Hub.

Thin storage primitives over the models. Each method that mutates state
takes a ``commit`` flag so the event applier can group a mutation and
its bookkeeping into one transaction.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import desc
from sqlalchemy.orm import Session

from .models import (
    BoardModel,
    BoardShareModel,
    CardModel,
    CommentModel,
    ProcessedEventModel,
    RelayAttemptModel,
)

# Fields a card update may touch; everything else is fixed after creation.
CARD_MERGE_FIELDS = ("column", "agent", "tokens", "end_at", "tags")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to UTC; naive values are assumed to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class BoardService:
    """Service for managing boards in the database."""

    def __init__(self, db: Session):
        self.db = db

    def get_boards(self) -> List[BoardModel]:
        """Get all boards ordered by name."""
        return self.db.query(BoardModel).order_by(BoardModel.name).all()

    def get_board_by_slug(self, slug: str) -> Optional[BoardModel]:
        return self.db.query(BoardModel).filter(BoardModel.slug == slug).first()

    def seed_if_empty(self, rows: Sequence[Sequence[str]]) -> int:
        """Insert the given (name, slug, description) rows if no board exists.

        Returns:
            Number of boards inserted
        """
        if self.db.query(BoardModel).count() > 0:
            return 0

        for name, slug, description in rows:
            self.db.add(BoardModel(name=name, slug=slug, description=description))
        self.db.commit()
        return len(rows)


class CardService:
    """Service for managing cards in the database."""

    def __init__(self, db: Session):
        self.db = db

    def get_card(self, card_id: int) -> Optional[CardModel]:
        return self.db.query(CardModel).filter(CardModel.id == card_id).first()

    def get_cards_for_board(self, board_id: int) -> List[CardModel]:
        """Get a board's cards, most recently updated first."""
        return (
            self.db.query(CardModel)
            .filter(CardModel.board_id == board_id)
            .order_by(desc(CardModel.updated_at), desc(CardModel.id))
            .all()
        )

    def create_card(
        self,
        board_id: int,
        title: str,
        description: str = "",
        column: str = "todo",
        agent: Optional[str] = None,
        tokens: int = 0,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
        tags: str = "",
        created_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> CardModel:
        """Create a new card.

        Args:
            created_at: Creation and update timestamp; defaults to now

        Returns:
            The new card
        """
        stamp = as_utc(created_at) or utc_now()
        card = CardModel(
            board_id=board_id,
            title=title,
            description=description,
            column=column,
            agent=agent,
            tokens=tokens,
            start_at=as_utc(start_at),
            end_at=as_utc(end_at),
            tags=tags,
            created_at=stamp,
            updated_at=stamp,
        )
        self.db.add(card)
        self.db.flush()
        if commit:
            self.db.commit()
            self.db.refresh(card)
        return card

    def merge_card(
        self,
        card_id: int,
        changes: Dict[str, Any],
        updated_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> Optional[CardModel]:
        """Apply a field-level merge to a card.

        Keys missing from ``changes`` or mapped to None keep their current
        value. Returns None (and changes nothing) if the card does not
        exist.
        """
        card = self.get_card(card_id)
        if card is None:
            return None

        for field in CARD_MERGE_FIELDS:
            value = changes.get(field)
            if value is None:
                continue
            if field == "end_at":
                value = as_utc(value)
            setattr(card, field, value)

        card.updated_at = as_utc(updated_at) or utc_now()
        self.db.flush()
        if commit:
            self.db.commit()
            self.db.refresh(card)
        return card

    def delete_card(self, card_id: int) -> bool:
        deleted = self.db.query(CardModel).filter(CardModel.id == card_id).delete()
        self.db.commit()
        return deleted > 0


class CommentService:
    """Service for managing comments. Comments are append-only."""

    def __init__(self, db: Session):
        self.db = db

    def add_comment(
        self,
        card_id: int,
        author: str,
        content: str,
        source: str = "web",
        created_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> CommentModel:
        comment = CommentModel(
            card_id=card_id,
            author=author,
            content=content,
            source=source,
            created_at=as_utc(created_at) or utc_now(),
        )
        self.db.add(comment)
        self.db.flush()
        if commit:
            self.db.commit()
            self.db.refresh(comment)
        return comment

    def get_comments(self, card_id: int) -> List[CommentModel]:
        """Get a card's comments, oldest first."""
        return (
            self.db.query(CommentModel)
            .filter(CommentModel.card_id == card_id)
            .order_by(CommentModel.created_at, CommentModel.id)
            .all()
        )


class ShareService:
    """Service for board share tokens."""

    def __init__(self, db: Session):
        self.db = db

    def create_share(self, board_id: int, commit: bool = True) -> BoardShareModel:
        """Issue a new opaque share token for a board."""
        share = BoardShareModel(board_id=board_id, token=uuid.uuid4().hex)
        self.db.add(share)
        self.db.flush()
        if commit:
            self.db.commit()
            self.db.refresh(share)
        return share


class ProcessedEventService:
    """Ledger of applied event ids."""

    def __init__(self, db: Session):
        self.db = db

    def is_processed(self, event_id: str) -> bool:
        return (
            self.db.query(ProcessedEventModel)
            .filter(ProcessedEventModel.event_id == event_id)
            .first()
            is not None
        )

    def record(self, event_id: str, event_type: str, source: Optional[str]) -> None:
        """Record an event id; flushed but not committed."""
        self.db.add(
            ProcessedEventModel(
                event_id=event_id,
                type=event_type,
                source=source,
                applied_at=utc_now(),
            )
        )
        self.db.flush()


class RelayAttemptService:
    """Failure counters and dead-letter marks for relay units."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, unit_id: str) -> Optional[RelayAttemptModel]:
        return (
            self.db.query(RelayAttemptModel)
            .filter(RelayAttemptModel.unit_id == unit_id)
            .first()
        )

    def is_dead_lettered(self, unit_id: str) -> bool:
        attempt = self.get(unit_id)
        return attempt is not None and attempt.dead_lettered_at is not None

    def record_failure(
        self, unit_id: str, error: str, max_attempts: int = 0
    ) -> RelayAttemptModel:
        """Count one failed delivery; dead-letter the unit at max_attempts.

        Args:
            unit_id: Durable relay unit id
            error: Short failure description
            max_attempts: Failure limit; 0 means unlimited
        """
        attempt = self.get(unit_id)
        if attempt is None:
            attempt = RelayAttemptModel(unit_id=unit_id, attempts=0)
            self.db.add(attempt)

        now = utc_now()
        attempt.attempts += 1
        attempt.last_error = error[:2000]
        attempt.last_attempt_at = now
        if max_attempts and attempt.attempts >= max_attempts:
            attempt.dead_lettered_at = now

        self.db.commit()
        self.db.refresh(attempt)
        return attempt

    def clear(self, unit_id: str) -> None:
        """Forget a unit once it has been acknowledged."""
        self.db.query(RelayAttemptModel).filter(
            RelayAttemptModel.unit_id == unit_id
        ).delete()
        self.db.commit()
