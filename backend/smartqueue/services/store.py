"""
Storage collaborators for ticket countdowns and service-rate stats.

The ETA services only depend on the TicketStore / StatsStore protocols.
Besides the SQL-backed stores (see sql_store.py) this module provides:

- in-memory stores, used by tests and by STORE_BACKEND=memory
- no-op stores, used when persistence is switched off (STORE_BACKEND=none)
"""

import logging
from typing import Optional, Protocol

from smartqueue.schemas.eta import EtaStats, TicketEta

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A storage backend failed to read or write a record."""


class TicketStore(Protocol):
    async def get(self, ticket_id: str) -> Optional[TicketEta]: ...

    async def list_active(self) -> list[TicketEta]: ...

    async def put(self, ticket: TicketEta) -> None: ...

    async def delete(self, ticket_id: str) -> None: ...


class StatsStore(Protocol):
    async def get(self, queue_id: str, time_window: str) -> Optional[EtaStats]: ...

    async def put(self, stats: EtaStats) -> None: ...


class InMemoryTicketStore:
    """Dict-backed ticket store. Records are copied in and out."""

    def __init__(self) -> None:
        self._tickets: dict[str, TicketEta] = {}

    async def get(self, ticket_id: str) -> Optional[TicketEta]:
        ticket = self._tickets.get(ticket_id)
        return ticket.model_copy() if ticket else None

    async def list_active(self) -> list[TicketEta]:
        return [t.model_copy() for t in self._tickets.values() if t.is_active]

    async def put(self, ticket: TicketEta) -> None:
        self._tickets[ticket.ticket_id] = ticket.model_copy()

    async def delete(self, ticket_id: str) -> None:
        self._tickets.pop(ticket_id, None)

    def __len__(self) -> int:
        return len(self._tickets)


class InMemoryStatsStore:
    """Dict-backed stats store keyed by (queue_id, time_window)."""

    def __init__(self) -> None:
        self._stats: dict[tuple[str, str], EtaStats] = {}

    async def get(self, queue_id: str, time_window: str) -> Optional[EtaStats]:
        stats = self._stats.get((queue_id, time_window))
        return stats.model_copy() if stats else None

    async def put(self, stats: EtaStats) -> None:
        self._stats[(stats.queue_id, stats.time_window)] = stats.model_copy()

    def __len__(self) -> int:
        return len(self._stats)


class NullTicketStore:
    """Ticket store that keeps nothing."""

    async def get(self, ticket_id: str) -> Optional[TicketEta]:
        return None

    async def list_active(self) -> list[TicketEta]:
        return []

    async def put(self, ticket: TicketEta) -> None:
        logger.debug("Ticket store disabled, skip save for ticket %s", ticket.ticket_id)

    async def delete(self, ticket_id: str) -> None:
        logger.debug("Ticket store disabled, skip delete for ticket %s", ticket_id)


class NullStatsStore:
    """Stats store that keeps nothing."""

    async def get(self, queue_id: str, time_window: str) -> Optional[EtaStats]:
        return None

    async def put(self, stats: EtaStats) -> None:
        logger.debug("Stats store disabled, skip save for queue %s", stats.queue_id)
