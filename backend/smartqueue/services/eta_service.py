"""
ETA service - entry point for calculating and tracking ticket ETAs.

Wires the calculator, the rate estimator and the ticket lifecycle
together. Everything a customer-facing request touches degrades
instead of failing: storage errors are logged and the best available
estimate is returned.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from smartqueue.config import Settings
from smartqueue.schemas.eta import (
    EtaResponse,
    EtaStats,
    NotificationChannel,
    TicketEta,
    TicketStatus,
)
from smartqueue.services.eta_calculator import EtaCalculator
from smartqueue.services.notifier import Notifier
from smartqueue.services.rate_estimator import ServiceRateEstimator
from smartqueue.services.scheduler import EtaScheduler
from smartqueue.services.store import StatsStore, TicketStore
from smartqueue.services.ticket_lifecycle import TicketLifecycle
from smartqueue.utils.timezone import utc_now

logger = logging.getLogger(__name__)


class EtaService:
    """Calculates ETAs and keeps tracked tickets up to date."""

    def __init__(
        self,
        calculator: EtaCalculator,
        rate_estimator: ServiceRateEstimator,
        lifecycle: TicketLifecycle,
        ticket_store: TicketStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.calculator = calculator
        self.rate_estimator = rate_estimator
        self.lifecycle = lifecycle
        self.ticket_store = ticket_store
        self.clock = clock

    async def calculate_eta(
        self,
        queue_id: str,
        ticket_id: Optional[str],
        position: Optional[int],
    ) -> EtaResponse:
        """Estimate the wait for a position without tracking it."""
        logger.info(
            "Calculating ETA for queue: %s, ticket: %s, position: %s",
            queue_id, ticket_id, position,
        )
        now = self.clock()
        estimate = await self.calculator.estimate(queue_id, position, now)
        return EtaResponse(
            queue_id=queue_id,
            ticket_id=ticket_id,
            estimated_wait_minutes=estimate.estimated_wait_minutes,
            p50_wait_minutes=estimate.p50_wait_minutes,
            p90_wait_minutes=estimate.p90_wait_minutes,
            service_rate=estimate.service_rate,
            updated_at=now,
        )

    async def calculate_and_track_eta(
        self,
        queue_id: str,
        ticket_id: str,
        position: Optional[int],
        address: Optional[str] = None,
        channel: NotificationChannel = NotificationChannel.EMAIL,
    ) -> EtaResponse:
        """
        Return the live ETA for a ticket, starting to track it if needed.

        A tracked ticket is decayed right away with the same logic as the
        scheduler tick. An untracked ticket gets a fresh estimate and is
        stored as WAITING.
        """
        async with self.lifecycle.locked(ticket_id):
            existing = None
            try:
                existing = await self.ticket_store.get(ticket_id)
            except Exception:
                logger.exception("Error loading ticket %s, treating it as untracked", ticket_id)

            if existing is not None:
                return await self._track_existing(existing)

            response = await self.calculate_eta(queue_id, ticket_id, position)
            ticket = TicketEta(
                ticket_id=ticket_id,
                queue_id=queue_id,
                channel=channel,
                address=address,
                remaining_minutes=response.estimated_wait_minutes,
                original_eta_minutes=response.estimated_wait_minutes,
                calculated_at=response.updated_at,
                updated_at=response.updated_at,
                notification_sent=False,
                status=TicketStatus.WAITING,
            )
            try:
                await self.ticket_store.put(ticket)
                logger.info(
                    "New ticket %s tracked with %d minutes ETA",
                    ticket_id, response.estimated_wait_minutes,
                )
            except Exception:
                logger.exception("Error saving new ticket %s", ticket_id)

            response.remaining_minutes = ticket.remaining_minutes
            response.status = ticket.status
            return response

    async def _track_existing(self, ticket: TicketEta) -> EtaResponse:
        try:
            ticket = await self.lifecycle.apply(ticket)
        except Exception:
            # Report whatever state the ticket reached in memory
            logger.exception("Error updating tracked ticket %s", ticket.ticket_id)

        logger.info(
            "Ticket %s tracked, live remaining minutes: %d",
            ticket.ticket_id, ticket.remaining_minutes,
        )
        return _ticket_response(ticket)

    async def get_ticket(self, ticket_id: str) -> Optional[EtaResponse]:
        """Live state of a tracked ticket, or None if it is not tracked."""
        try:
            ticket = await self.lifecycle.refresh(ticket_id)
        except Exception:
            logger.exception("Error refreshing ticket %s", ticket_id)
            return None
        return _ticket_response(ticket) if ticket else None

    async def get_latest_stats(self, queue_id: str) -> EtaStats:
        """Current-hour stats for a queue, falling back to defaults."""
        try:
            return await self.rate_estimator.latest_or_default(queue_id)
        except Exception:
            logger.exception("Error loading stats for queue %s, returning defaults", queue_id)
            return self.rate_estimator.default_stats(queue_id)

    async def update_service_stats(
        self,
        queue_id: str,
        served_count: int,
        window_seconds: int,
    ) -> EtaStats:
        """Record observed throughput. Errors propagate to the caller."""
        return await self.rate_estimator.record_served(queue_id, served_count, window_seconds)


def _ticket_response(ticket: TicketEta) -> EtaResponse:
    return EtaResponse(
        queue_id=ticket.queue_id,
        ticket_id=ticket.ticket_id,
        estimated_wait_minutes=ticket.original_eta_minutes,
        remaining_minutes=ticket.remaining_minutes,
        status=ticket.status,
        updated_at=ticket.updated_at,
    )


@dataclass
class EtaComponents:
    """Everything the application needs at runtime."""
    service: EtaService
    scheduler: EtaScheduler
    notifier: Notifier


def build_eta_components(
    settings: Settings,
    ticket_store: TicketStore,
    stats_store: StatsStore,
    notifier: Notifier,
    clock: Callable[[], datetime] = utc_now,
) -> EtaComponents:
    """Assemble the ETA services around the given collaborators."""
    rate_estimator = ServiceRateEstimator(stats_store, settings, clock)
    calculator = EtaCalculator(settings, rate_estimator, clock)
    lifecycle = TicketLifecycle(ticket_store, notifier, settings, clock)
    service = EtaService(calculator, rate_estimator, lifecycle, ticket_store, clock)
    scheduler = EtaScheduler(lifecycle, ticket_store, settings.eta_scheduler_interval_seconds)
    return EtaComponents(service=service, scheduler=scheduler, notifier=notifier)
