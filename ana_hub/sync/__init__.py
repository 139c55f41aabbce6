"""
Board event synchronization.

Components:
    - events: Event envelope, payload models, card column states
    - applier: Applies one event to the store
    - intake: Loopback-only POST /api/sync/apply endpoint
    - relay: GitHub issues client used as the event relay
    - poller: Periodic relay → intake forwarding with acknowledgment
"""

from .applier import ApplyResult, ApplyStatus, EventApplier
from .events import (
    CardColumn,
    Event,
    EventTypes,
    EventValidationError,
    SyncError,
    can_transition,
)
from .poller import PollReport, RelayPoller, run_poller
from .relay import GitHubRelay, RelayError, RelayUnit

__all__ = [
    "ApplyResult",
    "ApplyStatus",
    "EventApplier",
    "CardColumn",
    "Event",
    "EventTypes",
    "EventValidationError",
    "SyncError",
    "can_transition",
    "PollReport",
    "RelayPoller",
    "run_poller",
    "GitHubRelay",
    "RelayError",
    "RelayUnit",
]
