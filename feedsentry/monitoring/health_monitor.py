"""
Health Monitor
==============

Supervises the orchestrator on its own timer. When no round has succeeded
within the stale threshold, the monitor forces the same restart the
orchestrator performs after too many failed rounds. This covers rounds that
hang instead of failing.
"""

import asyncio
from typing import Optional

from ..config.settings import HealthSettings
from ..database.models import HealthSnapshot
from ..scheduler.collector import CollectionOrchestrator
from ..utils.clock import Clock
from ..utils.exceptions import StaleCollectionError
from ..utils.logging import get_logger_for_component


class HealthMonitor:
    """Staleness watchdog and read-only health reporting."""

    def __init__(
        self,
        orchestrator: CollectionOrchestrator,
        settings: Optional[HealthSettings] = None,
        clock: Optional[Clock] = None,
    ):
        self.orchestrator = orchestrator
        self.settings = settings or HealthSettings()
        self.clock = clock or orchestrator.clock
        self.logger = get_logger_for_component("health_monitor")
        self._task: Optional[asyncio.Task] = None

    def seconds_since_success(self) -> float:
        last_success = self.orchestrator.health.last_successful_round_at
        return (self.clock.now() - last_success).total_seconds()

    def is_stale(self) -> bool:
        return self.seconds_since_success() > self.settings.stale_threshold_seconds

    async def check(self) -> bool:
        """Run one health check.

        Returns:
            True if a restart was initiated
        """
        if not self.orchestrator.active:
            self.logger.debug("Collector stopped, skipping health check")
            return False

        elapsed = self.seconds_since_success()
        if elapsed <= self.settings.stale_threshold_seconds:
            self.logger.debug(f"Collector healthy, last success {elapsed:.0f}s ago")
            return False

        error = StaleCollectionError(
            f"No successful round for {elapsed / 60:.1f} minutes",
            seconds_since_success=elapsed,
        )
        self.logger.warning(str(error), extra=error.to_dict())
        return self.orchestrator.request_restart(error)

    def snapshot(self) -> HealthSnapshot:
        """Read-only view for status and administration surfaces."""
        health = self.orchestrator.health
        last_round = health.last_round
        return HealthSnapshot(
            state=self.orchestrator.state,
            status=self.orchestrator.status,
            is_collecting=health.is_collecting,
            error_count=health.consecutive_error_count,
            last_successful_round_at=health.last_successful_round_at,
            collection_interval_seconds=self.orchestrator.settings.interval_seconds,
            max_consecutive_errors=self.orchestrator.settings.max_consecutive_errors,
            stale_threshold_seconds=self.settings.stale_threshold_seconds,
            restart_count=health.restart_count,
            last_round=last_round.to_dict() if last_round else None,
        )

    async def _loop(self) -> None:
        while True:
            await self.clock.sleep(self.settings.check_interval_seconds)
            try:
                await self.check()
            except Exception as e:
                self.logger.error(f"Health check failed: {e}", exc_info=True)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="feedsentry-health-monitor")
        self.logger.info(
            f"Health monitor started (every {self.settings.check_interval_seconds}s, "
            f"stale after {self.settings.stale_threshold_seconds}s)"
        )

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])
