"""HTTP tests for the ETA endpoints"""
import pytest
from fastapi.testclient import TestClient

from smartqueue.main import app
from smartqueue.services.eta_service import build_eta_components


@pytest.fixture
def client(settings, ticket_store, stats_store, notifier, clock):
    with TestClient(app) as client:
        app.state.eta = build_eta_components(
            settings, ticket_store, stats_store, notifier, clock
        )
        yield client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_track_then_read_ticket(client, clock):
    response = client.get(
        "/api/eta/track",
        params={"queue_id": "Q-1", "ticket_id": "T-1", "position": 5,
                "customer_email": "ana@example.com"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["estimated_wait_minutes"] == 8
    assert body["remaining_minutes"] == 8
    assert body["status"] == "WAITING"

    clock.advance(minutes=2)
    response = client.get("/api/eta/tickets/T-1")

    assert response.status_code == 200
    assert response.json()["remaining_minutes"] == 6


def test_untracked_ticket_is_404(client):
    response = client.get("/api/eta/tickets/nope")

    assert response.status_code == 404


def test_calculate_does_not_track(client, ticket_store):
    response = client.get("/api/eta/calculate", params={"queue_id": "Q-1", "position": 5})

    assert response.status_code == 200
    assert response.json()["remaining_minutes"] is None
    assert len(ticket_store) == 0


def test_negative_position_is_rejected(client):
    response = client.get("/api/eta/calculate", params={"queue_id": "Q-1", "position": -1})

    assert response.status_code == 422


def test_stats_update_and_read(client):
    response = client.post(
        "/api/eta/stats/Q-1", json={"served_count": 12, "window_seconds": 300}
    )

    assert response.status_code == 200
    assert response.json()["ema_service_rate"] == pytest.approx(2.4)

    response = client.get("/api/eta/stats/Q-1")

    assert response.status_code == 200
    body = response.json()
    assert body["queue_id"] == "Q-1"
    assert body["time_window"] == "2026-10-20T10"
    assert body["ema_service_rate"] == pytest.approx(2.4)


def test_stats_update_rejects_empty_window(client):
    response = client.post(
        "/api/eta/stats/Q-1", json={"served_count": 3, "window_seconds": 0}
    )

    assert response.status_code == 422
