"""
Event applier: turns one sync event into one state transition.

Each event is applied in its own transaction. When an event carries an
id, the id is recorded in the processed-events ledger inside that same
transaction, so a redelivered event is recognized and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from ..db.services import (
    CardService,
    CommentService,
    ProcessedEventService,
    ShareService,
    as_utc,
)
from .events import (
    BoardShareData,
    CardColumn,
    CardCommentData,
    CardCreateData,
    CardUpdateData,
    Event,
    EventTypes,
    parse_payload,
)

logger = structlog.get_logger()

DEFAULT_COMMENT_SOURCE = "sync"


class ApplyStatus:
    """Outcome of applying one event."""

    APPLIED = "applied"
    NOOP = "noop"  # target card missing
    DUPLICATE = "duplicate"  # event id already in the ledger
    STALE = "stale"  # update older than the card's last change
    IGNORED = "ignored"  # unknown event type


@dataclass
class ApplyResult:
    """Result of EventApplier.apply()."""

    status: str
    event_type: str
    entity_id: Optional[int] = None


class EventApplier:
    """Applies sync events to the board store.

    The applier keeps no state between calls; everything it needs is read
    from the session it is given.
    """

    def __init__(self, db: Session):
        self.db = db
        self.cards = CardService(db)
        self.comments = CommentService(db)
        self.shares = ShareService(db)
        self.ledger = ProcessedEventService(db)

    def apply(self, event: Event) -> ApplyResult:
        """Apply one event.

        Raises:
            EventValidationError: if a known event type has an invalid payload
            sqlalchemy.exc.SQLAlchemyError: on storage failure (rolled back)
        """
        log = logger.bind(
            event_type=event.type,
            timestamp=event.timestamp.isoformat(),
            event_id=event.id,
        )

        payload = parse_payload(event)
        if payload is None:
            log.warning("sync_event_unknown_type")
            return ApplyResult(status=ApplyStatus.IGNORED, event_type=event.type)

        if event.id and self.ledger.is_processed(event.id):
            log.info("sync_event_duplicate")
            return ApplyResult(status=ApplyStatus.DUPLICATE, event_type=event.type)

        try:
            if event.type == EventTypes.CARD_CREATE:
                result = self._create_card(event, payload)
            elif event.type == EventTypes.CARD_UPDATE:
                result = self._update_card(event, payload)
            elif event.type == EventTypes.CARD_COMMENT:
                result = self._add_comment(event, payload)
            else:
                result = self._share_board(event, payload)

            if event.id:
                self.ledger.record(event.id, event.type, event.source)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log.info("sync_event_applied", status=result.status, entity_id=result.entity_id)
        return result

    def _create_card(self, event: Event, data: CardCreateData) -> ApplyResult:
        card = self.cards.create_card(
            board_id=data.board_id,
            title=data.title,
            description=data.description or "",
            column=(data.column or CardColumn.TODO).value,
            agent=data.agent or None,
            tokens=data.tokens or 0,
            start_at=data.start_at,
            end_at=data.end_at,
            tags=data.tags or "",
            created_at=event.timestamp,
            commit=False,
        )
        return ApplyResult(ApplyStatus.APPLIED, event.type, card.id)

    def _update_card(self, event: Event, data: CardUpdateData) -> ApplyResult:
        card = self.cards.get_card(data.id)
        if card is None:
            return ApplyResult(ApplyStatus.NOOP, event.type, data.id)

        if as_utc(event.timestamp) < as_utc(card.updated_at):
            logger.info(
                "sync_event_stale",
                card_id=card.id,
                event_timestamp=event.timestamp.isoformat(),
                card_updated_at=as_utc(card.updated_at).isoformat(),
            )
            return ApplyResult(ApplyStatus.STALE, event.type, card.id)

        changes = data.model_dump(exclude={"id"}, exclude_none=True)
        if "column" in changes:
            changes["column"] = CardColumn(changes["column"]).value

        self.cards.merge_card(card.id, changes, updated_at=event.timestamp, commit=False)
        return ApplyResult(ApplyStatus.APPLIED, event.type, card.id)

    def _add_comment(self, event: Event, data: CardCommentData) -> ApplyResult:
        comment = self.comments.add_comment(
            card_id=data.card_id,
            author=data.author,
            content=data.content,
            source=event.source or DEFAULT_COMMENT_SOURCE,
            created_at=event.timestamp,
            commit=False,
        )
        return ApplyResult(ApplyStatus.APPLIED, event.type, comment.id)

    def _share_board(self, event: Event, data: BoardShareData) -> ApplyResult:
        share = self.shares.create_share(data.board_id, commit=False)
        return ApplyResult(ApplyStatus.APPLIED, event.type, share.id)

