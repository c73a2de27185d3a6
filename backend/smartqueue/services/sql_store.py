"""
SQLAlchemy-backed ticket and stats stores.

Each call opens its own session; rows are converted to the pydantic
records in schemas/eta.py so callers never hold ORM objects.
"""

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartqueue.models import EtaStatsRecord, TicketEtaRecord
from smartqueue.schemas.eta import EtaStats, TicketEta
from smartqueue.services.store import StoreError
from smartqueue.utils.timezone import ensure_utc

logger = logging.getLogger(__name__)


def ticket_to_record(ticket: TicketEta) -> TicketEtaRecord:
    return TicketEtaRecord(
        ticket_id=ticket.ticket_id,
        queue_id=ticket.queue_id,
        channel=ticket.channel.value,
        address=ticket.address,
        remaining_minutes=ticket.remaining_minutes,
        original_eta_minutes=ticket.original_eta_minutes,
        calculated_at=ticket.calculated_at,
        updated_at=ticket.updated_at,
        notification_sent=ticket.notification_sent,
        status=ticket.status.value,
    )


def ticket_from_record(record: TicketEtaRecord) -> TicketEta:
    """Load a row as an aware-UTC ticket; some backends return naive datetimes."""
    ticket = TicketEta.model_validate(record)
    ticket.calculated_at = ensure_utc(ticket.calculated_at)
    ticket.updated_at = ensure_utc(ticket.updated_at)
    return ticket


def stats_from_record(record: EtaStatsRecord) -> EtaStats:
    stats = EtaStats.model_validate(record)
    stats.window_start = ensure_utc(stats.window_start)
    stats.updated_at = ensure_utc(stats.updated_at)
    return stats


def stats_to_record(stats: EtaStats) -> EtaStatsRecord:
    return EtaStatsRecord(
        queue_id=stats.queue_id,
        time_window=stats.time_window,
        served_count=stats.served_count,
        ema_service_rate=stats.ema_service_rate,
        p50_wait_time_minutes=stats.p50_wait_time_minutes,
        p90_wait_time_minutes=stats.p90_wait_time_minutes,
        window_start=stats.window_start,
        updated_at=stats.updated_at,
    )


class SqlTicketStore:
    """Ticket store on the ticket_eta table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get(self, ticket_id: str) -> Optional[TicketEta]:
        try:
            async with self._session_maker() as db:
                record = await db.get(TicketEtaRecord, ticket_id)
                return ticket_from_record(record) if record else None
        except SQLAlchemyError as e:
            logger.error("Failed to get ticket %s: %s", ticket_id, e)
            raise StoreError(f"Failed to get ticket {ticket_id}") from e

    async def list_active(self) -> list[TicketEta]:
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    select(TicketEtaRecord).where(TicketEtaRecord.remaining_minutes > 0)
                )
                return [ticket_from_record(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Failed to scan active tickets: %s", e)
            raise StoreError("Failed to scan active tickets") from e

    async def put(self, ticket: TicketEta) -> None:
        try:
            async with self._session_maker() as db:
                await db.merge(ticket_to_record(ticket))
                await db.commit()
            logger.debug("Saved ticket %s", ticket.ticket_id)
        except SQLAlchemyError as e:
            logger.error("Failed to save ticket %s: %s", ticket.ticket_id, e)
            raise StoreError(f"Failed to save ticket {ticket.ticket_id}") from e

    async def delete(self, ticket_id: str) -> None:
        try:
            async with self._session_maker() as db:
                await db.execute(
                    delete(TicketEtaRecord).where(TicketEtaRecord.ticket_id == ticket_id)
                )
                await db.commit()
            logger.info("Deleted ticket %s", ticket_id)
        except SQLAlchemyError as e:
            logger.error("Failed to delete ticket %s: %s", ticket_id, e)
            raise StoreError(f"Failed to delete ticket {ticket_id}") from e


class SqlStatsStore:
    """Stats store on the eta_stats table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get(self, queue_id: str, time_window: str) -> Optional[EtaStats]:
        try:
            async with self._session_maker() as db:
                record = await db.get(EtaStatsRecord, (queue_id, time_window))
                return stats_from_record(record) if record else None
        except SQLAlchemyError as e:
            logger.error("Failed to get stats for queue %s window %s: %s", queue_id, time_window, e)
            raise StoreError(f"Failed to get stats for queue {queue_id}") from e

    async def put(self, stats: EtaStats) -> None:
        try:
            async with self._session_maker() as db:
                await db.merge(stats_to_record(stats))
                await db.commit()
            logger.debug("Saved stats for queue %s window %s", stats.queue_id, stats.time_window)
        except SQLAlchemyError as e:
            logger.error("Failed to save stats for queue %s: %s", stats.queue_id, e)
            raise StoreError(f"Failed to save stats for queue {stats.queue_id}") from e
