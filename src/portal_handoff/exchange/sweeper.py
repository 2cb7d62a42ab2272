# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Periodic removal of abandoned exchange states and idle rate counters."""

import asyncio

from ..core.logging_utils import get_logger
from ..core.rate_limiter import RateLimiter
from .base import ExchangeStore

logger = get_logger(__name__)


class ExchangeSweeper:
    """Runs ``store.sweep()`` on a fixed interval in a background task.

    A sweep racing a consume is harmless: whichever deletes the record first
    wins and the other is a no-op.
    """

    def __init__(
        self,
        store: ExchangeStore,
        interval_seconds: float = 300.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._store = store
        self._interval = interval_seconds
        self._rate_limiter = rate_limiter
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the background task."""
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def run_once(self) -> int:
        """Sweep immediately; returns the number of states removed."""
        removed = await self._store.sweep()
        if removed:
            logger.info("Swept %d expired auth states", removed)
        if self._rate_limiter is not None:
            dropped = await self._rate_limiter.cleanup_inactive_clients()
            if dropped:
                logger.debug("Dropped %d idle rate limit counters", dropped)
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self._interval)
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                # Keep sweeping; the next tick retries.
                logger.error("Error in auth state sweep: %s", e)
