"""
Relay poller CLI entry point.

Usage:
    python -m ana_hub.sync [OPTIONS]

Options:
    --once              Run one poll cycle and exit
    --interval N        Minutes between poll cycles (default: from config)
"""
from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

import structlog

from ..config import get_settings
from ..db.base import create_tables
from ..logs import configure_logging
from .poller import RelayPoller, run_poller
from .relay import GitHubRelay

logger = structlog.get_logger()


async def _run_forever(settings) -> None:
    poller = RelayPoller(settings, GitHubRelay.from_settings(settings))
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, poller.stop)
        except NotImplementedError:
            pass
    try:
        await poller.run()
    finally:
        await poller.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the poller CLI."""
    parser = argparse.ArgumentParser(
        description="Ana Hub relay poller - forwards relay events to the local backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Poll on the configured interval
    python -m ana_hub.sync

    # Drain the relay once
    python -m ana_hub.sync --once

    # Poll every 5 minutes
    python -m ana_hub.sync --interval 5
        """,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll cycle and exit",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Minutes between poll cycles (default: from config)",
    )
    args = parser.parse_args(argv)
    if args.interval is not None and args.interval < 1:
        parser.error("--interval must be at least 1 minute")

    settings = get_settings()
    if args.interval is not None:
        settings = settings.model_copy(update={"sync_poll_interval_minutes": args.interval})
    configure_logging(settings)

    if not settings.sync_relay_owner or not settings.sync_relay_repo:
        logger.error("poller_not_configured", missing="SYNC_RELAY_OWNER/SYNC_RELAY_REPO")
        return 1

    try:
        # The attempt table lives in the poller's own database.
        create_tables()
        if args.once:
            report = asyncio.run(run_poller(settings, once=True))
            return 0 if report.failed == 0 else 2
        asyncio.run(_run_forever(settings))
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.exception("poller_error", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
