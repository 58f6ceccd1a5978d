"""Background task that periodically evicts expired rate limit entries.

Without it, the table only shrinks when a key comes back after its window
expired, so a churn of one-off client IPs would grow it without bound.
"""

from __future__ import annotations

import asyncio
import logging

from app.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class RateLimitSweeper:
    """Run ``limiter.sweep()`` every ``interval_seconds`` on the event loop."""

    def __init__(self, limiter: AbstractRateLimiter, *, interval_seconds: float = 300.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._limiter = limiter
        self._interval = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def sweep_once(self) -> int:
        """Run a single sweep and log how many entries were removed."""
        removed = self._limiter.sweep()
        logger.debug("rate_limit.sweep", extra={"removed": removed})
        return removed

    async def start(self) -> None:
        """Start the background sweep task (no-op when already running)."""
        if self._task is not None:
            logger.debug("rate_limit.sweeper_already_running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        """Stop the background task, cancelling it if it does not exit in time."""
        if self._task is None:
            return

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
            logger.info("rate_limit.sweeper_stopped")

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                # Interval elapsed without a stop request
                pass
            else:
                break

            try:
                self.sweep_once()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
