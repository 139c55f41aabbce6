"""
FastAPI application: board API and the sync intake endpoint.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List

import structlog
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .config import get_settings
from .db.base import get_db, init_database
from .db.services import BoardService, CardService, CommentService
from .logs import configure_logging
from .schemas import CardCreate, CardPatch, CommentCreate
from .sync.intake import router as sync_router

logger = structlog.get_logger()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("app_starting", app_name=settings.app_name, environment=settings.environment)

    try:
        await init_database()
    except Exception as e:
        logger.error("app_start_failed", error=str(e))
        raise

    yield

    logger.info("app_stopped")


def _version() -> str:
    try:
        return importlib.metadata.version("ana-hub")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


app = FastAPI(
    title="Ana Hub",
    description="Self-hosted board backend with relay-based event sync",
    version=_version(),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync_router)


@app.get("/api/health", tags=["system"])
def health() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# Boards
@app.get("/api/kanban/boards", tags=["boards"])
def list_boards(db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    """List all boards ordered by name."""
    return [board.to_dict() for board in BoardService(db).get_boards()]


@app.get("/api/kanban/board/{slug}", tags=["boards"])
def get_board(slug: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Get a board and its cards, most recently updated first."""
    board = BoardService(db).get_board_by_slug(slug)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")

    cards = CardService(db).get_cards_for_board(board.id)
    return {"board": board.to_dict(), "cards": [card.to_dict() for card in cards]}


# Cards
@app.post("/api/kanban/board/{slug}/cards", tags=["cards"])
def create_card(
    slug: str, card: CardCreate, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Create a card on a board."""
    board = BoardService(db).get_board_by_slug(slug)
    if not board:
        raise HTTPException(status_code=404, detail="Board not found")
    if not card.title or not card.title.strip():
        raise HTTPException(status_code=400, detail="Title required")

    db_card = CardService(db).create_card(
        board_id=board.id,
        title=card.title.strip(),
        description=card.description,
        column=card.column.value,
        agent=card.agent or None,
        tokens=card.tokens,
        start_at=card.start_at,
        end_at=card.end_at,
        tags=card.tags,
    )
    logger.info("card_created", card_id=db_card.id, board=slug, source="web")
    return db_card.to_dict()


@app.patch("/api/kanban/card/{card_id}", tags=["cards"])
def update_card(
    card_id: int, patch: CardPatch, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Merge the given fields into a card."""
    changes = patch.model_dump(exclude_none=True)
    if "column" in changes:
        changes["column"] = changes["column"].value

    card = CardService(db).merge_card(card_id, changes)
    if not card:
        raise HTTPException(status_code=404, detail="Card not found")
    return card.to_dict()


@app.delete("/api/kanban/card/{card_id}", tags=["cards"])
def delete_card(card_id: int, db: Session = Depends(get_db)) -> Dict[str, bool]:
    """Delete a card. Its comments are kept."""
    CardService(db).delete_card(card_id)
    return {"ok": True}


# Comments
@app.post("/api/kanban/card/{card_id}/comments", tags=["comments"])
def add_comment(
    card_id: int, comment: CommentCreate, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Append a comment to a card."""
    if not comment.author or not comment.content:
        raise HTTPException(status_code=400, detail="Author and content required")

    db_comment = CommentService(db).add_comment(
        card_id=card_id,
        author=comment.author,
        content=comment.content,
        source=comment.source or "web",
    )
    return {"id": db_comment.id}


@app.get("/api/kanban/card/{card_id}/comments", tags=["comments"])
def list_comments(card_id: int, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    """List a card's comments, oldest first."""
    return [comment.to_dict() for comment in CommentService(db).get_comments(card_id)]
