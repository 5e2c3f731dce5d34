"""Background task purging expired rate limit records.

Sweeping is memory management only: limiters already treat expired records
as absent, so admission decisions do not depend on when (or whether) a
sweep has run.
"""

from __future__ import annotations

import asyncio
import logging

from app.core.rate_limit import RateLimitTiers

logger = logging.getLogger(__name__)


class RateLimitSweeper:
    """Periodically calls ``sweep()`` on every rate limit tier.

    The application lifespan owns the task: ``start()`` on startup,
    ``stop()`` on shutdown.
    """

    def __init__(self, tiers: RateLimitTiers, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._tiers = tiers
        self._interval = interval_seconds
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> dict[str, int]:
        """Sweep every tier once.

        Returns:
            Number of records removed per tier.
        """
        removed = {name: limiter.sweep() for name, limiter in self._tiers}
        if any(removed.values()):
            logger.info("rate_limit.swept", extra={"removed": removed})
        return removed

    async def start(self) -> None:
        """Start the background sweep loop (no-op if already running)."""
        if self._task is not None:
            logger.debug("rate_limit.sweeper_already_running")
            return

        # Bound to the running loop, so a restarted app gets a fresh one
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._task = asyncio.create_task(self._run(stop_event))
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it, cancelling if it hangs."""
        if self._task is None:
            return

        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("rate_limit.sweeper_stop_timeout")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            self._stop_event = None
            logger.info("rate_limit.sweeper_stopped")

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                self.run_once()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
