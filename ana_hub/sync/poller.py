"""
Relay poller - drains the relay into the local intake endpoint.

Flow, per cycle:
1. List: open units carrying the sync label, most recently updated first
2. Decode: each unit body into one event (undecodable units are skipped)
3. Forward: POST the event to the loopback intake endpoint
4. Acknowledge: close the unit once the intake answered 2xx

A unit that fails anywhere stays open and is picked up again next cycle,
so delivery is at-least-once. Redelivered events are dropped by the
applier through the unit id stamped onto each event. Units that keep
failing are dead-lettered after ``max_attempts`` failures.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
import structlog
from sqlalchemy.orm import Session

from ..config import Settings
from ..db.base import get_session_local
from ..db.services import RelayAttemptService
from .events import Event, EventValidationError
from .relay import GitHubRelay, RelayError, RelayUnit

logger = structlog.get_logger()


@dataclass
class PollReport:
    """Counters for one poll cycle."""

    ran: bool = True
    listed: int = 0
    applied: int = 0
    skipped: int = 0
    failed: int = 0
    dead_lettered: int = 0


class RelayPoller:
    """Periodically forwards relay units to the intake endpoint."""

    def __init__(
        self,
        settings: Settings,
        relay: GitHubRelay,
        session_factory: Optional[Callable[[], Session]] = None,
        intake_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the poller.

        Args:
            settings: Application settings (interval, timeouts, limits)
            relay: Relay client to list and acknowledge units
            session_factory: Returns a new DB session for attempt tracking
            intake_transport: Transport override for the intake client
        """
        self.settings = settings
        self.relay = relay
        self.session_factory = session_factory or get_session_local()
        self.intake_url = settings.intake_url
        self.interval = settings.sync_poll_interval_seconds
        self.startup_delay = settings.sync_startup_delay_seconds
        self.max_attempts = settings.sync_max_attempts
        self.intake = httpx.AsyncClient(
            timeout=settings.sync_request_timeout_seconds,
            transport=intake_transport,
        )
        self._cycle_lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self.logger = logger.bind(relay=f"{relay.owner}/{relay.repo}")

        self.logger.info(
            "poller_initialized",
            interval_minutes=settings.sync_poll_interval_minutes,
            label=relay.label,
            max_attempts=self.max_attempts,
        )

    async def close(self) -> None:
        await self.intake.aclose()
        await self.relay.close()

    def stop(self) -> None:
        """Signal the run loop to exit after the current cycle."""
        self.logger.info("poller_stop_requested")
        self._stopped.set()

    async def run(self) -> None:
        """Run a first cycle after the startup delay, then one per interval."""
        self.logger.info("poller_started")
        delay = self.startup_delay
        try:
            while not self._stopped.is_set():
                if await self._sleep(delay):
                    break
                try:
                    await self.poll_once()
                except Exception as e:
                    # A broken cycle must never end the loop.
                    self.logger.exception("poll_cycle_error", error=str(e))
                delay = self.interval
        finally:
            self.logger.info("poller_stopped")

    async def _sleep(self, seconds: float) -> bool:
        """Sleep, waking early on stop. Returns True if stopped."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def poll_once(self) -> PollReport:
        """Run one poll cycle. A cycle already in flight makes this a no-op."""
        if self._cycle_lock.locked():
            self.logger.warning("poll_cycle_overlap_skipped")
            return PollReport(ran=False)

        async with self._cycle_lock:
            report = PollReport()
            try:
                units = await self.relay.list_pending()
            except RelayError as e:
                self.logger.error("relay_list_failed", error=str(e))
                report.failed = 1
                return report

            report.listed = len(units)
            for unit in units:
                await self._process_unit(unit, report)

            self.logger.info(
                "poll_cycle_complete",
                listed=report.listed,
                applied=report.applied,
                skipped=report.skipped,
                failed=report.failed,
                dead_lettered=report.dead_lettered,
            )
            return report

    async def _process_unit(self, unit: RelayUnit, report: PollReport) -> None:
        """Decode, forward and acknowledge one unit. Never raises."""
        log = self.logger.bind(unit_id=unit.unit_id)

        try:
            if self._is_dead_lettered(unit):
                log.debug("relay_unit_dead_lettered_skip")
                report.skipped += 1
                return

            try:
                event = Event.parse_body(unit.body)
            except EventValidationError as e:
                log.warning("relay_unit_undecodable", error=str(e))
                report.skipped += 1
                return

            if event.id is None:
                event = event.model_copy(update={"id": unit.unit_id})
            log = log.bind(event_type=event.type, timestamp=event.timestamp.isoformat())

            await self._forward(event)
            await self.relay.acknowledge(unit)
        except Exception as e:
            report.failed += 1
            log.error("relay_unit_failed", error=str(e), error_type=type(e).__name__)
            if self._record_failure(unit, str(e) or type(e).__name__):
                report.dead_lettered += 1
            return

        report.applied += 1
        log.info("relay_unit_closed")
        self._clear_failures(unit)

    async def _forward(self, event: Event) -> None:
        """POST an event to the intake endpoint; raise unless it answered 2xx."""
        response = await self.intake.post(self.intake_url, json=event.to_payload())
        if not response.is_success:
            raise RelayError(
                f"intake responded {response.status_code}: {response.text[:200]}"
            )

    def _is_dead_lettered(self, unit: RelayUnit) -> bool:
        """Check the dead-letter mark. An unreadable attempt table counts as not marked."""
        db = self.session_factory()
        try:
            return RelayAttemptService(db).is_dead_lettered(unit.unit_id)
        except Exception as e:
            self.logger.error("relay_attempt_lookup_failed", unit_id=unit.unit_id, error=str(e))
            return False
        finally:
            db.close()

    def _record_failure(self, unit: RelayUnit, error: str) -> bool:
        """Count a failure. Returns True if the unit was just dead-lettered."""
        db = self.session_factory()
        try:
            attempt = RelayAttemptService(db).record_failure(
                unit.unit_id, error, max_attempts=self.max_attempts
            )
        except Exception as e:
            self.logger.error("relay_attempt_record_failed", unit_id=unit.unit_id, error=str(e))
            return False
        finally:
            db.close()

        if attempt.dead_lettered_at is not None and attempt.attempts == self.max_attempts:
            self.logger.error(
                "relay_unit_dead_lettered",
                unit_id=unit.unit_id,
                attempts=attempt.attempts,
                last_error=attempt.last_error,
            )
            return True
        return False

    def _clear_failures(self, unit: RelayUnit) -> None:
        db = self.session_factory()
        try:
            RelayAttemptService(db).clear(unit.unit_id)
        except Exception as e:
            self.logger.error("relay_attempt_clear_failed", unit_id=unit.unit_id, error=str(e))
        finally:
            db.close()


async def run_poller(settings: Settings, once: bool = False) -> PollReport:
    """Build a poller from settings and run it.

    Args:
        settings: Application settings
        once: Run a single cycle immediately instead of looping

    Returns:
        The report of the single cycle, or an empty report after the loop ends
    """
    relay = GitHubRelay.from_settings(settings)
    poller = RelayPoller(settings, relay)
    try:
        if once:
            return await poller.poll_once()
        await poller.run()
        return PollReport(ran=False)
    finally:
        await poller.close()
