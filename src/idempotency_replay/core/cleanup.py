"""Periodic removal of expired records from in-process stores.

Stores with native expiry (Redis) do not need this. The in-memory store
hides expired records immediately but only frees them when
``cleanup_expired()`` runs; ``ExpirySweeper`` calls it on an interval.

A failed sweep is logged and the next one runs on schedule. The engine
itself never depends on the sweeper.

Examples:
    Start and stop with a FastAPI lifespan::

        from contextlib import asynccontextmanager

        from idempotency_replay.core.cleanup import ExpirySweeper

        @asynccontextmanager
        async def lifespan(app):
            sweeper = ExpirySweeper(store, interval_seconds=300)
            sweeper.start()
            yield
            await sweeper.stop()
"""

import asyncio
from typing import Protocol

from idempotency_replay.observability.logging import get_logger
from idempotency_replay.observability.metrics import record_cleanup

logger = get_logger(__name__)


class SupportsCleanup(Protocol):
    async def cleanup_expired(self) -> int: ...


class ExpirySweeper:
    """Background task calling ``store.cleanup_expired()`` every interval.

    The sweeper owns both its task and the event that ends it, so stopping
    needs nothing but the sweeper.

    Attributes:
        store: Store exposing cleanup_expired()
        interval_seconds: Time between sweeps (default 5 minutes)
    """

    def __init__(self, store: SupportsCleanup, interval_seconds: float = 300) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self) -> int:
        """Run one sweep and return the number of records removed.

        A store error is logged and reported as zero removals.
        """
        try:
            count = await self.store.cleanup_expired()
        except Exception as e:
            logger.error("cleanup.failed", error=str(e), error_type=type(e).__name__)
            return 0

        record_cleanup(count)
        if count > 0:
            logger.info("cleanup.completed", records_removed=count)
        else:
            logger.debug("cleanup.completed", records_removed=0)
        return count

    async def run(self) -> None:
        """Sweep until ``stop()`` is called; the first sweep is immediate."""
        logger.info("cleanup.started", interval_seconds=self.interval_seconds)

        while not self._stopping.is_set():
            await self.sweep()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

        logger.info("cleanup.stopped")

    def start(self) -> None:
        """Schedule ``run()`` on the running event loop.

        Raises:
            RuntimeError: If the sweeper is already running.
        """
        if self.running:
            raise RuntimeError("expiry sweeper is already running")
        self._stopping.clear()
        self._task = asyncio.create_task(self.run())

    async def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to finish and wait for it.

        A sweep still blocked after ``timeout`` seconds is cancelled. Stopping
        a sweeper that was never started does nothing.
        """
        task, self._task = self._task, None
        if task is None:
            return

        self._stopping.set()
        try:
            await asyncio.wait_for(task, timeout=timeout)
        except asyncio.TimeoutError:
            # wait_for has already cancelled and awaited the task
            logger.warning("cleanup.stop_timeout", timeout=timeout)
