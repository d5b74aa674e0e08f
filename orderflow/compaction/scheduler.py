"""Periodic compaction sweeps.

Runs SessionOptimizer.sweep on a fixed interval in a background task.
A failing sweep is logged and the loop keeps going.
"""

import asyncio
from typing import TYPE_CHECKING

from orderflow.compaction.models import SweepResult
from orderflow.observability.logging import get_logger

if TYPE_CHECKING:
    from orderflow.compaction.optimizer import SessionOptimizer
    from orderflow.sessions.service import SessionService

logger = get_logger(__name__)


class CompactionScheduler:
    """Background sweeper for stale and oversized sessions."""

    def __init__(
        self,
        optimizer: "SessionOptimizer",
        store: "SessionService",
        interval_seconds: float | None = None,
    ):
        """Initialize scheduler.

        Args:
            optimizer: Optimizer that performs the sweep
            store: Session service to sweep
            interval_seconds: Seconds between sweeps (defaults to the
                optimizer's configured sweep interval)
        """
        self._optimizer = optimizer
        self._store = store
        self._interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else optimizer.config.sweep_interval_seconds
        )
        self._running = False
        self._sweep_task: asyncio.Task | None = None
        self._last_result: SweepResult | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_result(self) -> SweepResult | None:
        return self._last_result

    async def start(self) -> None:
        """Start the sweep loop. The first sweep runs immediately."""
        if self._running:
            logger.warning("compaction_scheduler_already_running")
            return

        self._running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())

        logger.info(
            "compaction_scheduler_started",
            interval_seconds=self._interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the sweep loop."""
        if not self._running:
            return

        self._running = False

        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        logger.info("compaction_scheduler_stopped")

    async def run_once(self) -> SweepResult:
        """Run a single sweep now, then drop expired read-cache entries."""
        self._last_result = await self._optimizer.sweep(self._store)
        evicted = self._store.cache.clear_expired()
        if evicted:
            logger.debug("session_cache_evicted", evicted=evicted)
        return self._last_result

    async def _sweep_loop(self) -> None:
        """Background loop running sweeps on the interval."""
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error("compaction_sweep_failed", error=str(e))

            await asyncio.sleep(self._interval_seconds)
