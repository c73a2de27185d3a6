"""Tests for EtaService (calculate, track, stats)"""
import pytest

from smartqueue.schemas.eta import NotificationChannel, TicketStatus
from smartqueue.services.eta_service import build_eta_components

from conftest import FailingStatsStore, make_ticket


@pytest.fixture
def service(components):
    return components.service


class TestCalculateAndTrack:
    @pytest.mark.asyncio
    async def test_new_ticket_is_tracked(self, service, ticket_store, clock):
        response = await service.calculate_and_track_eta(
            "Q-1", "T-1", 5, address="ana@example.com",
        )

        assert response.estimated_wait_minutes == 8
        assert response.remaining_minutes == 8
        assert response.status == TicketStatus.WAITING

        stored = await ticket_store.get("T-1")
        assert stored.queue_id == "Q-1"
        assert stored.remaining_minutes == 8
        assert stored.original_eta_minutes == 8
        assert stored.calculated_at == clock.now
        assert stored.channel == NotificationChannel.EMAIL
        assert stored.address == "ana@example.com"
        assert not stored.notification_sent

    @pytest.mark.asyncio
    async def test_reregistration_within_a_minute_is_stable(self, service, ticket_store, clock):
        await service.calculate_and_track_eta("Q-1", "T-1", 5)
        clock.advance(seconds=30)

        response = await service.calculate_and_track_eta("Q-1", "T-1", 50)

        assert response.remaining_minutes == 8
        assert response.estimated_wait_minutes == 8
        assert len(ticket_store.puts) == 1

    @pytest.mark.asyncio
    async def test_reregistration_decays_immediately(self, service, clock):
        await service.calculate_and_track_eta("Q-1", "T-1", 5)
        clock.advance(minutes=3)

        response = await service.calculate_and_track_eta("Q-1", "T-1", 5)

        assert response.estimated_wait_minutes == 8
        assert response.remaining_minutes == 5
        assert response.updated_at == clock.now

    @pytest.mark.asyncio
    async def test_reregistration_notifies_like_the_tick(self, service, notifier, clock):
        await service.calculate_and_track_eta("Q-1", "T-1", 5, address="ana@example.com")
        clock.advance(minutes=6)

        response = await service.calculate_and_track_eta("Q-1", "T-1", 5)

        assert response.remaining_minutes == 2
        assert response.status == TicketStatus.NOTIFIED
        assert [r.address for r in notifier.requests] == ["ana@example.com"]

    @pytest.mark.asyncio
    async def test_reregistration_at_zero_retires(self, service, ticket_store, clock):
        await service.calculate_and_track_eta("Q-1", "T-1", 5)
        clock.advance(minutes=30)

        response = await service.calculate_and_track_eta("Q-1", "T-1", 5)

        assert response.remaining_minutes == 0
        assert response.status == TicketStatus.READY
        assert await ticket_store.get("T-1") is None

    @pytest.mark.asyncio
    async def test_store_outage_still_answers(self, service, ticket_store):
        ticket_store.fail_get = True
        ticket_store.fail_put_for.add("T-1")

        response = await service.calculate_and_track_eta("Q-1", "T-1", 5)

        assert response.estimated_wait_minutes == 8
        assert response.remaining_minutes == 8


class TestCalculate:
    @pytest.mark.asyncio
    async def test_does_not_track(self, service, ticket_store):
        response = await service.calculate_eta("Q-1", "T-1", 5)

        assert response.estimated_wait_minutes == 8
        assert response.remaining_minutes is None
        assert response.p50_wait_minutes == 5
        assert response.p90_wait_minutes == 10
        assert len(ticket_store) == 0

    @pytest.mark.asyncio
    async def test_stats_outage_degrades(self, settings, ticket_store, notifier, clock):
        service = build_eta_components(
            settings, ticket_store, FailingStatsStore(), notifier, clock
        ).service

        response = await service.calculate_eta("Q-1", None, 4)

        assert response.estimated_wait_minutes == 20
        assert response.service_rate == settings.eta_default_service_rate


class TestTickets:
    @pytest.mark.asyncio
    async def test_round_trip(self, ticket_store):
        ticket = make_ticket("T-9", remaining=12, status=TicketStatus.NOTIFIED, notification_sent=True)
        await ticket_store.put(ticket)

        loaded = await ticket_store.get("T-9")

        assert loaded.ticket_id == ticket.ticket_id
        assert loaded.queue_id == ticket.queue_id
        assert loaded.remaining_minutes == ticket.remaining_minutes
        assert loaded.status == ticket.status

    @pytest.mark.asyncio
    async def test_list_active_skips_finished(self, ticket_store):
        await ticket_store.put(make_ticket("T-1", remaining=0, status=TicketStatus.READY))
        await ticket_store.put(make_ticket("T-2", remaining=4))

        assert [t.ticket_id for t in await ticket_store.list_active()] == ["T-2"]

    @pytest.mark.asyncio
    async def test_get_ticket(self, service, clock):
        assert await service.get_ticket("T-1") is None

        await service.calculate_and_track_eta("Q-1", "T-1", 5)
        clock.advance(minutes=1)

        response = await service.get_ticket("T-1")
        assert response.remaining_minutes == 7


class TestStats:
    @pytest.mark.asyncio
    async def test_update_then_read(self, service):
        await service.update_service_stats("Q-1", served_count=12, window_seconds=300)

        stats = await service.get_latest_stats("Q-1")

        assert stats.ema_service_rate == pytest.approx(2.4)
        assert stats.served_count == 1

    @pytest.mark.asyncio
    async def test_read_failure_returns_defaults(self, settings, ticket_store, notifier, clock):
        service = build_eta_components(
            settings, ticket_store, FailingStatsStore(), notifier, clock
        ).service

        stats = await service.get_latest_stats("Q-1")

        assert stats.ema_service_rate == settings.eta_default_service_rate
        assert stats.served_count == 0
