"""
Event models for board synchronization.

An event is one typed state change travelling from the relay to the
local store. The envelope is loose (unknown ``type`` values
are accepted so the applier can log and ignore them); each known type
has a strict payload model that is validated at apply time.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, conint, constr


class SyncError(Exception):
    """Base class for synchronization errors."""


class EventValidationError(SyncError):
    """An event body is not a valid event, or its payload is invalid."""


class CardColumn(str, Enum):
    """Lifecycle state of a card."""

    IDEAS = "ideas"
    TODO = "todo"
    INPROGRESS = "inprogress"
    COMPLETED = "completed"


def can_transition(current: CardColumn, target: CardColumn) -> bool:
    """Column transitions are unguarded: any column may move to any other."""
    return isinstance(current, CardColumn) and isinstance(target, CardColumn)


class EventTypes:
    """Event types understood by the applier."""

    CARD_CREATE = "card:create"
    CARD_UPDATE = "card:update"
    CARD_COMMENT = "card:comment"
    BOARD_SHARE = "board:share"


class Event(BaseModel):
    """Envelope for one synchronization event."""

    model_config = ConfigDict(extra="ignore")

    type: constr(min_length=1, max_length=100)
    timestamp: datetime
    source: Optional[constr(max_length=50)] = None
    id: Optional[constr(min_length=1, max_length=255)] = Field(
        default=None,
        description="Durable id used to drop redelivered events",
    )
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def parse_body(cls, body: Optional[str]) -> "Event":
        """Decode a serialized event.

        Raises:
            EventValidationError: if the body is empty or not a valid event
        """
        if not body or not body.strip():
            raise EventValidationError("empty event body")
        try:
            return cls.model_validate_json(body.strip())
        except ValidationError as e:
            raise EventValidationError(f"invalid event body: {e.error_count()} error(s)") from e

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready representation, omitting an absent id."""
        return self.model_dump(mode="json", exclude_none=True)

    def __str__(self) -> str:
        return f"Event(type={self.type}, timestamp={self.timestamp.isoformat()}, id={self.id})"


class CardCreateData(BaseModel):
    """Payload of ``card:create``."""

    board_id: int
    title: constr(strip_whitespace=True, min_length=1, max_length=500)
    description: Optional[str] = None
    column: Optional[CardColumn] = None
    agent: Optional[constr(max_length=100)] = None
    tokens: Optional[conint(ge=0)] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    tags: Optional[str] = None


class CardUpdateData(BaseModel):
    """Payload of ``card:update``; every field except ``id`` is optional."""

    id: int
    column: Optional[CardColumn] = None
    agent: Optional[constr(max_length=100)] = None
    tokens: Optional[conint(ge=0)] = None
    end_at: Optional[datetime] = None
    tags: Optional[str] = None


class CardCommentData(BaseModel):
    """Payload of ``card:comment``."""

    card_id: int
    author: constr(strip_whitespace=True, min_length=1, max_length=100)
    content: constr(strip_whitespace=True, min_length=1)


class BoardShareData(BaseModel):
    """Payload of ``board:share``."""

    board_id: int


PAYLOAD_MODELS: Dict[str, Type[BaseModel]] = {
    EventTypes.CARD_CREATE: CardCreateData,
    EventTypes.CARD_UPDATE: CardUpdateData,
    EventTypes.CARD_COMMENT: CardCommentData,
    EventTypes.BOARD_SHARE: BoardShareData,
}


def parse_payload(event: Event) -> Optional[BaseModel]:
    """Validate an event's payload against its type.

    Returns:
        The payload model, or None for an unknown event type

    Raises:
        EventValidationError: if the payload does not match its type
    """
    model = PAYLOAD_MODELS.get(event.type)
    if model is None:
        return None
    try:
        return model.model_validate(event.data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise EventValidationError(f"invalid {event.type} payload: {fields}") from e
