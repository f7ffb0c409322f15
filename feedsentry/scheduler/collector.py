"""
Collection Orchestrator
=======================

Drives periodic collection rounds across all enabled sources.

Round state is a two-state machine (idle, collecting); rounds never overlap.
Within a round every source runs as its own task, bounded by a semaphore, and
reports a SourceOutcome through a queue. The orchestrator alone aggregates
those messages and updates the health counters, once per round.

A run of failed rounds reaching ``max_consecutive_errors`` triggers a restart:
the timer is stopped, a cooldown elapses, the counter is reset and the timer
is re-armed. The health monitor requests the same restart when collection
goes stale.
"""

import asyncio
from typing import Dict, List, Optional

from ..config.settings import CollectionSettings
from ..database.models import (
    CollectorState,
    FeedSource,
    HealthState,
    HealthStatus,
    RoundResult,
    SourceOutcome,
)
from ..ingestion.feed_fetcher import SourceFetcher
from ..processing.pipeline import SourcePipeline
from ..storage.interfaces import SourceRegistry
from ..utils.clock import Clock, SystemClock
from ..utils.exceptions import CollectionError, ConsecutiveFailureLimitExceeded
from ..utils.logging import PerformanceLogger, get_logger_for_component

# Seconds granted to cancelled source tasks to unwind after a round timeout
CANCEL_GRACE_SECONDS = 5.0


class CollectionOrchestrator:
    """Schedules rounds and owns the collector's health state."""

    def __init__(
        self,
        registry: SourceRegistry,
        pipeline: SourcePipeline,
        fetcher: SourceFetcher,
        settings: Optional[CollectionSettings] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize orchestrator.

        Args:
            registry: Supplies the enabled sources for each round
            pipeline: Per-source collection steps
            fetcher: Opened for the duration of each round
            settings: Interval, concurrency, timeout and restart policy
            clock: Time source for timers and health timestamps
        """
        self.registry = registry
        self.pipeline = pipeline
        self.fetcher = fetcher
        self.settings = settings or CollectionSettings()
        self.clock = clock or SystemClock()
        self.logger = get_logger_for_component("orchestrator")

        self.health = HealthState(last_successful_round_at=self.clock.now())
        self._active = False
        self._timer_task: Optional[asyncio.Task] = None
        self._restart_task: Optional[asyncio.Task] = None
        self._stop_generation = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> CollectorState:
        return CollectorState.COLLECTING if self.health.is_collecting else CollectorState.IDLE

    @property
    def active(self) -> bool:
        """True between start() and an administrative stop()."""
        return self._active

    @property
    def is_running(self) -> bool:
        """True while the collection timer is armed."""
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def status(self) -> HealthStatus:
        if self.health.restarting:
            return HealthStatus.RESTARTING
        if not self._active:
            return HealthStatus.STOPPED
        last_round = self.health.last_round
        if self.health.consecutive_error_count > 0 or (
            last_round is not None and last_round.failed_source_ids
        ):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    @property
    def last_round(self) -> Optional[RoundResult]:
        return self.health.last_round

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    async def run_round(self) -> Optional[RoundResult]:
        """Run one collection round.

        Returns:
            The round result, or None if another round is still in progress
        """
        if self.health.is_collecting:
            self.logger.warning("Collection round already in progress, skipping")
            return None

        self.health.is_collecting = True
        result = RoundResult(started_at=self.clock.now())
        cancelled = False

        try:
            with PerformanceLogger(self.logger, "collection round"):
                sources = self.registry.list_enabled_sources()
                result.sources_total = len(sources)
                await self._collect(sources, result)

            failed_all = bool(sources) and len(result.failed_source_ids) == len(sources)
            result.success = not failed_all
            if failed_all:
                result.error = f"all {len(sources)} sources failed"

        except asyncio.CancelledError:
            cancelled = True
            result.error = "round cancelled"
            raise
        except Exception as e:
            result.error = str(e)
            self.logger.error(f"Collection round failed: {e}", exc_info=True)
        finally:
            result.finished_at = self.clock.now()
            self.health.is_collecting = False
            self.health.last_round = result
            if not cancelled:
                self._record_round(result)

        return result

    async def _collect(self, sources: List[FeedSource], result: RoundResult) -> None:
        """Fan out one task per source and aggregate their outcomes."""
        if not sources:
            self.logger.info("No enabled sources to collect")
            return

        outbox: asyncio.Queue = asyncio.Queue()
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_sources)

        async with self.fetcher:
            tasks = [
                asyncio.create_task(
                    self._run_source(source, semaphore, outbox),
                    name=f"collect:{source.id}",
                )
                for source in sources
            ]
            try:
                _, pending = await asyncio.wait(
                    tasks, timeout=self.settings.round_timeout_seconds
                )
                if pending:
                    self.logger.warning(
                        f"Round timeout after {self.settings.round_timeout_seconds}s, "
                        f"abandoning {len(pending)} source(s)"
                    )
            finally:
                await self._cancel_pending(tasks)

        reported: Dict[str, SourceOutcome] = {}
        while not outbox.empty():
            outcome = outbox.get_nowait()
            reported[outcome.source_id] = outcome

        for source in sources:
            outcome = reported.get(source.id)
            if outcome is None:
                result.timed_out_source_ids.append(source.id)
                result.failed_source_ids.append(source.id)
            elif not outcome.success:
                result.failed_source_ids.append(source.id)
            else:
                result.accepted_count += outcome.accepted
                result.duplicate_count += outcome.duplicates

    async def _run_source(
        self,
        source: FeedSource,
        semaphore: asyncio.Semaphore,
        outbox: asyncio.Queue,
    ) -> None:
        async with semaphore:
            try:
                outcome = await self.pipeline.run(source, self.fetcher)
            except Exception as e:
                self.logger.error(
                    f"Pipeline for {source.id} failed: {e}",
                    extra={"source_id": source.id},
                    exc_info=True,
                )
                outcome = SourceOutcome(
                    source_id=source.id,
                    source_name=source.name,
                    success=False,
                    error=str(e),
                )
        outbox.put_nowait(outcome)

    async def _cancel_pending(self, tasks: List[asyncio.Task]) -> None:
        pending = [task for task in tasks if not task.done()]
        if not pending:
            return
        for task in pending:
            task.cancel()
        # Tasks that ignore cancellation are abandoned after the grace period
        await asyncio.wait(pending, timeout=CANCEL_GRACE_SECONDS)

    def _record_round(self, result: RoundResult) -> None:
        """Update health counters once the round has settled."""
        if result.success:
            self.health.consecutive_error_count = 0
            self.health.last_successful_round_at = result.finished_at
        else:
            self.health.consecutive_error_count += 1

        self.logger.info(
            f"Round finished: {result.accepted_count} accepted, "
            f"{len(result.failed_source_ids)}/{result.sources_total} sources failed",
            extra=result.to_dict(),
        )

        if self.health.consecutive_error_count >= self.settings.max_consecutive_errors:
            self.request_restart(
                ConsecutiveFailureLimitExceeded(
                    f"{self.health.consecutive_error_count} consecutive failed rounds",
                    error_count=self.health.consecutive_error_count,
                )
            )

    # ------------------------------------------------------------------
    # Timer and lifecycle
    # ------------------------------------------------------------------

    async def _timer_loop(self) -> None:
        run_now = self.settings.run_on_start
        while True:
            if not run_now:
                await self.clock.sleep(self.settings.interval_seconds)
            run_now = False
            await self.run_round()

    async def start(self) -> None:
        """Arm the collection timer."""
        self._active = True
        if self.is_running:
            return
        self._timer_task = asyncio.create_task(
            self._timer_loop(), name="feedsentry-collection-timer"
        )
        self.logger.info(
            f"Collection timer armed (every {self.settings.interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop collecting; cancels an in-flight round and any pending restart."""
        self._stop_generation += 1
        self._active = False
        restart_task = self._restart_task
        if (
            restart_task is not None
            and not restart_task.done()
            and restart_task is not asyncio.current_task()
        ):
            restart_task.cancel()
            await asyncio.wait([restart_task])
        await self._stop_timer()
        self.logger.info("Collection stopped")

    async def _stop_timer(self) -> None:
        task = self._timer_task
        self._timer_task = None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait([task])

    def request_restart(self, reason: Optional[CollectionError] = None) -> bool:
        """Schedule a restart unless one is already under way.

        Returns:
            True if a restart was scheduled
        """
        if self._restart_task is not None and not self._restart_task.done():
            self.logger.debug(f"Restart already in progress, ignoring: {reason}")
            return False

        self._restart_task = asyncio.create_task(
            self._perform_restart(reason), name="feedsentry-restart"
        )
        return True

    async def wait_for_restart(self) -> None:
        """Wait for a scheduled restart to finish."""
        if self._restart_task is not None:
            await asyncio.wait([self._restart_task])

    async def restart(self, reason: Optional[CollectionError] = None) -> None:
        """Restart collection, joining a restart that is already under way."""
        self.request_restart(reason)
        await self.wait_for_restart()

    async def _perform_restart(self, reason: Optional[CollectionError]) -> None:
        """Stop the timer, cool down, reset the error counter and re-arm."""
        stop_generation = self._stop_generation
        self.health.restarting = True
        self.health.restart_count += 1
        self.logger.error(
            f"Restarting collection: {reason or 'requested'}",
            extra={"reason": reason.to_dict() if reason else None},
        )

        try:
            await self._stop_timer()
            await self.clock.sleep(self.settings.restart_cooldown_seconds)
            if self._stop_generation != stop_generation:
                self.logger.info("Collection stopped during restart cooldown, not re-arming")
                return
            self.health.consecutive_error_count = 0
            await self._stop_timer()
            self._active = True
            self._timer_task = asyncio.create_task(
                self._timer_loop(), name="feedsentry-collection-timer"
            )
            self.logger.info("Collection timer re-armed after restart")
        finally:
            self.health.restarting = False
