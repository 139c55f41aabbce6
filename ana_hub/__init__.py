"""
Ana Hub

Self-hosted board backend that keeps cards in sync through an external
issue tracker used as an event relay.
"""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("ana-hub")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"

from .config import Settings, get_settings
from .sync import (
    CardColumn,
    Event,
    EventApplier,
    EventTypes,
    GitHubRelay,
    RelayPoller,
)

__all__ = [
    "Settings",
    "get_settings",
    "CardColumn",
    "Event",
    "EventApplier",
    "EventTypes",
    "GitHubRelay",
    "RelayPoller",
]
