"""
Sync intake endpoint.

Accepts one event per request from a caller on the local host and hands
it to the event applier. Requests from any other address are refused
before the body is read.
"""

from __future__ import annotations

import ipaddress
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..db.base import get_db
from .applier import EventApplier
from .events import Event

logger = structlog.get_logger()

INTAKE_PATH = "/api/sync/apply"

router = APIRouter(tags=["sync"])


def is_loopback(host: Optional[str]) -> bool:
    """True if the peer address is a loopback address (IPv4, IPv6, or mapped)."""
    if not host:
        return False
    try:
        address = ipaddress.ip_address(host.split("%", 1)[0])
    except ValueError:
        return False
    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        address = mapped
    return address.is_loopback


def _forbidden() -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": "Forbidden"})


def _failed() -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Failed"})


@router.post(INTAKE_PATH)
async def apply_sync_event(request: Request, db: Session = Depends(get_db)):
    """Apply one sync event. Local callers only.

    Only the socket peer address is trusted; forwarding headers are
    ignored.
    """
    peer = request.client.host if request.client else None
    if not is_loopback(peer):
        logger.warning("sync_intake_rejected", peer=peer)
        return _forbidden()

    try:
        body = await request.body()
        event = Event.parse_body(body.decode("utf-8"))
    except Exception as e:
        logger.error("sync_intake_malformed", error=str(e))
        return _failed()

    try:
        result = EventApplier(db).apply(event)
    except Exception as e:
        logger.error(
            "sync_apply_error",
            event_type=event.type,
            timestamp=event.timestamp.isoformat(),
            event_id=event.id,
            error=str(e),
            error_type=type(e).__name__,
        )
        return _failed()

    return {"ok": True, "status": result.status}
