"""
pytest configuration and shared fixtures
"""
import os
from datetime import datetime, timedelta
from typing import Optional

import pytest
import pytz

# Keep the app off PostgreSQL and the background ticker during tests
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("ETA_SCHEDULER_ENABLED", "false")

from smartqueue.config import Settings  # noqa: E402
from smartqueue.schemas.eta import (  # noqa: E402
    NotificationRequest,
    NotificationResponse,
    NotificationStatus,
    TicketEta,
    TicketStatus,
)
from smartqueue.services.eta_service import build_eta_components  # noqa: E402
from smartqueue.services.store import InMemoryStatsStore, InMemoryTicketStore  # noqa: E402

# Tuesday
TUESDAY_1030 = datetime(2026, 10, 20, 10, 30, tzinfo=pytz.UTC)


class FixedClock:
    """Controllable clock injected into every component."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)
        return self.now


class RecordingNotifier:
    """Notifier that remembers every request and answers as configured."""

    def __init__(self, scheduled: bool = True, error: Optional[Exception] = None) -> None:
        self.requests: list[NotificationRequest] = []
        self.scheduled = scheduled
        self.error = error

    async def notify(self, request: NotificationRequest) -> NotificationResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return NotificationResponse(
            ticket_id=request.ticket_id,
            scheduled=self.scheduled,
            status=NotificationStatus.PENDING if self.scheduled else NotificationStatus.FAILED,
        )


class SpyTicketStore(InMemoryTicketStore):
    """In-memory ticket store that records writes and can fail on demand."""

    def __init__(self) -> None:
        super().__init__()
        self.puts: list[TicketEta] = []
        self.deletes: list[str] = []
        self.fail_put_for: set[str] = set()
        self.fail_list_active = False
        self.fail_get = False

    async def get(self, ticket_id: str):
        if self.fail_get:
            raise RuntimeError("store unavailable")
        return await super().get(ticket_id)

    async def list_active(self):
        if self.fail_list_active:
            raise RuntimeError("scan failed")
        return await super().list_active()

    async def put(self, ticket: TicketEta) -> None:
        if ticket.ticket_id in self.fail_put_for:
            raise RuntimeError(f"write failed for {ticket.ticket_id}")
        self.puts.append(ticket.model_copy())
        await super().put(ticket)

    async def delete(self, ticket_id: str) -> None:
        self.deletes.append(ticket_id)
        await super().delete(ticket_id)


class FailingStatsStore:
    async def get(self, queue_id, time_window):
        raise RuntimeError("stats table unreachable")

    async def put(self, stats):
        raise RuntimeError("stats table unreachable")


def make_ticket(
    ticket_id: str = "T-1",
    remaining: int = 10,
    updated_at: datetime = TUESDAY_1030,
    status: TicketStatus = TicketStatus.WAITING,
    notification_sent: bool = False,
) -> TicketEta:
    return TicketEta(
        ticket_id=ticket_id,
        queue_id="Q-1",
        address=f"{ticket_id.lower()}@example.com",
        remaining_minutes=remaining,
        original_eta_minutes=remaining,
        calculated_at=updated_at,
        updated_at=updated_at,
        notification_sent=notification_sent,
        status=status,
    )


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        store_backend="memory",
        eta_timezone="UTC",
        eta_ema_alpha=0.3,
        eta_default_service_rate=1.0,
        eta_notification_threshold_minutes=2,
        eta_scheduler_interval_seconds=60,
        eta_retry_failed_notifications=False,
    )


@pytest.fixture
def clock():
    return FixedClock(TUESDAY_1030)


@pytest.fixture
def ticket_store():
    return SpyTicketStore()


@pytest.fixture
def stats_store():
    return InMemoryStatsStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def components(settings, ticket_store, stats_store, notifier, clock):
    return build_eta_components(settings, ticket_store, stats_store, notifier, clock)
