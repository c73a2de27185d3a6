"""
Ticket Lifecycle

Decay-and-transition logic shared by the scheduler tick and by ticket
re-registration, so both paths move a ticket the same way:

    WAITING --(remaining <= threshold)--> NOTIFIED --(remaining == 0)--> READY
    WAITING --------------(remaining == 0)-----------------------------> READY

READY tickets are written once more as a final snapshot and then deleted.
COMPLETED and CANCELLED belong to the queue service; this module never
sets them and leaves such tickets untouched.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

from smartqueue.config import Settings
from smartqueue.schemas.eta import (
    NotificationRequest,
    TicketEta,
    TicketStatus,
)
from smartqueue.services.notifier import Notifier
from smartqueue.services.store import TicketStore
from smartqueue.utils.timezone import utc_now, whole_minutes_between

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.WAITING: frozenset({TicketStatus.NOTIFIED, TicketStatus.READY}),
    TicketStatus.NOTIFIED: frozenset({TicketStatus.READY}),
    TicketStatus.READY: frozenset(),
    TicketStatus.COMPLETED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}

EXTERNAL_STATES = frozenset({TicketStatus.COMPLETED, TicketStatus.CANCELLED})


class InvalidTransitionError(ValueError):
    """Raised when a ticket status change is not part of the lifecycle."""


def transition(current: TicketStatus, target: TicketStatus) -> TicketStatus:
    """Validate a status change and return the new status."""
    if current == target:
        return current
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Cannot move ticket from {current.value} to {target.value}")
    return target


class TicketLifecycle:
    """Applies elapsed time to tickets and drives their status."""

    def __init__(
        self,
        ticket_store: TicketStore,
        notifier: Notifier,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.ticket_store = ticket_store
        self.notifier = notifier
        self.threshold = settings.eta_notification_threshold_minutes
        self.retry_failed_notifications = settings.eta_retry_failed_notifications
        self.message = settings.notification_message
        self.clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def locked(self, ticket_id: str) -> AsyncIterator[None]:
        """Serialize read-modify-write cycles on one ticket within this process."""
        lock = self._locks.setdefault(ticket_id, asyncio.Lock())
        self._lock_users[ticket_id] = self._lock_users.get(ticket_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Drop the lock once nobody holds or waits for it
            self._lock_users[ticket_id] -= 1
            if self._lock_users[ticket_id] == 0:
                del self._lock_users[ticket_id]
                del self._locks[ticket_id]

    async def refresh(self, ticket_id: str) -> Optional[TicketEta]:
        """
        Reload a ticket and bring it up to date.

        Returns:
            The live ticket (a READY snapshot if it just reached zero),
            or None if the ticket is not tracked
        """
        async with self.locked(ticket_id):
            ticket = await self.ticket_store.get(ticket_id)
            if ticket is None:
                return None
            return await self.apply(ticket)

    async def apply(self, ticket: TicketEta, now: Optional[datetime] = None) -> TicketEta:
        """
        Decay a ticket by the whole minutes since its last update.

        Callers must hold ``locked(ticket.ticket_id)``. Nothing is written
        when less than a minute has passed.
        """
        if ticket.status in EXTERNAL_STATES:
            logger.debug("Ticket %s is %s, not decaying", ticket.ticket_id, ticket.status.value)
            return ticket

        now = now or self.clock()
        elapsed = whole_minutes_between(ticket.updated_at, now)
        if elapsed < 1:
            return ticket

        remaining = max(0, ticket.remaining_minutes - elapsed)
        ticket.remaining_minutes = remaining
        ticket.updated_at = now
        logger.info("Updated ticket %s: %d minutes remaining", ticket.ticket_id, remaining)

        if 0 < remaining <= self.threshold and not ticket.notification_sent:
            await self._notify(ticket)

        if remaining == 0:
            ticket.status = transition(ticket.status, TicketStatus.READY)
            try:
                await self.ticket_store.put(ticket)
            except Exception:
                # Retire the ticket even without its READY snapshot
                logger.exception("Error saving READY snapshot for ticket %s", ticket.ticket_id)
            await self.ticket_store.delete(ticket.ticket_id)
            logger.info("Ticket %s is ready, removed from tracking", ticket.ticket_id)
            return ticket

        await self.ticket_store.put(ticket)
        return ticket

    async def _notify(self, ticket: TicketEta) -> None:
        request = NotificationRequest(
            ticket_id=ticket.ticket_id,
            channel=ticket.channel,
            address=ticket.address,
            message=self.message,
        )
        logger.info("Sending ready notification to %s for ticket %s", ticket.address, ticket.ticket_id)

        delivered = False
        try:
            response = await self.notifier.notify(request)
            delivered = response.scheduled
            if not delivered:
                logger.warning(
                    "Notification for ticket %s not scheduled: %s",
                    ticket.ticket_id, response.message,
                )
        except Exception:
            logger.exception("Failed to send ready notification for ticket %s", ticket.ticket_id)

        if not delivered and self.retry_failed_notifications:
            # Leave the flag unset so the next pass tries again
            return

        ticket.notification_sent = True
        ticket.status = transition(ticket.status, TicketStatus.NOTIFIED)
