"""
ETA scheduler - the recurring countdown over all active tickets.

Runs as a background asyncio task owned by the application lifespan.
Ticks never overlap: the loop waits for a tick to finish before sleeping,
and tick() refuses to start while another tick is still running.
"""

import asyncio
import logging
from typing import Optional

from smartqueue.services.store import TicketStore
from smartqueue.services.ticket_lifecycle import TicketLifecycle

logger = logging.getLogger(__name__)


class EtaScheduler:
    """Periodically decays every active ticket."""

    def __init__(
        self,
        lifecycle: TicketLifecycle,
        ticket_store: TicketStore,
        interval_seconds: float = 60.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        self.lifecycle = lifecycle
        self.ticket_store = ticket_store
        self.interval_seconds = interval_seconds
        self._tick_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> int:
        """
        Run one pass over the active tickets.

        Returns:
            Number of tickets processed without error (0 if the pass was
            skipped or the active set could not be fetched)
        """
        if self._tick_lock.locked():
            logger.warning("Previous ETA update still running, skipping this tick")
            return 0

        async with self._tick_lock:
            logger.debug("Running scheduled ETA update")
            try:
                active = await self.ticket_store.list_active()
            except Exception:
                logger.exception("Error fetching active tickets, aborting this tick")
                return 0

            logger.info("Processing %d active tickets", len(active))
            processed = 0
            for ticket in active:
                try:
                    await self.lifecycle.refresh(ticket.ticket_id)
                    processed += 1
                except Exception:
                    logger.exception("Error updating ticket ETA: %s", ticket.ticket_id)
            return processed

    async def run_forever(self) -> None:
        """Tick, sleep, repeat until cancelled."""
        while True:
            await self.tick()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.is_running:
            return
        logger.info("Starting ETA scheduler (every %ss)", self.interval_seconds)
        self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            logger.info("Stopping ETA scheduler...")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
