from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, conint, constr

from ..sync.events import CardColumn


class CardCreate(BaseModel):
    """Body of POST /api/kanban/board/{slug}/cards."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: str = ""
    column: CardColumn = CardColumn.TODO
    agent: Optional[constr(max_length=100)] = None
    tokens: conint(ge=0) = 0
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    tags: str = ""


class CardPatch(BaseModel):
    """Body of PATCH /api/kanban/card/{id}. Absent fields are left unchanged."""

    model_config = ConfigDict(extra="ignore")

    column: Optional[CardColumn] = None
    agent: Optional[constr(max_length=100)] = None
    tokens: Optional[conint(ge=0)] = None
    end_at: Optional[datetime] = None
    tags: Optional[str] = None


class CommentCreate(BaseModel):
    """Body of POST /api/kanban/card/{id}/comments."""

    model_config = ConfigDict(extra="ignore")

    author: Optional[constr(strip_whitespace=True, max_length=100)] = None
    content: Optional[str] = None
    source: Optional[constr(max_length=50)] = None
