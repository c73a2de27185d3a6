"""
ETA API endpoints.
Calculates and tracks ticket ETAs and records queue throughput.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from smartqueue.schemas.eta import (
    EtaResponse,
    EtaStats,
    NotificationChannel,
    ServiceStatsUpdate,
)
from smartqueue.services.eta_service import EtaService
from smartqueue.services.store import StoreError

router = APIRouter()


def get_eta_service(request: Request) -> EtaService:
    """Dependency that provides the application's ETA service."""
    return request.app.state.eta.service


@router.get("/track", response_model=EtaResponse)
async def track_eta(
    queue_id: str,
    ticket_id: str,
    position: Optional[int] = Query(None, ge=0),
    customer_email: Optional[str] = None,
    channel: NotificationChannel = NotificationChannel.EMAIL,
    service: EtaService = Depends(get_eta_service),
):
    """
    Start tracking a ticket, or return its live countdown if already tracked.

    Always answers; a storage outage yields a conservative estimate.
    """
    return await service.calculate_and_track_eta(
        queue_id,
        ticket_id,
        position,
        address=customer_email,
        channel=channel,
    )


@router.get("/calculate", response_model=EtaResponse)
async def calculate_eta(
    queue_id: str,
    position: Optional[int] = Query(None, ge=0),
    ticket_id: Optional[str] = None,
    service: EtaService = Depends(get_eta_service),
):
    """Estimate the wait for a queue position without tracking it."""
    return await service.calculate_eta(queue_id, ticket_id, position)


@router.get("/tickets/{ticket_id}", response_model=EtaResponse)
async def get_ticket_eta(
    ticket_id: str,
    service: EtaService = Depends(get_eta_service),
):
    """Live countdown of a tracked ticket."""
    response = await service.get_ticket(ticket_id)
    if response is None:
        raise HTTPException(status_code=404, detail="Ticket not tracked")
    return response


@router.get("/stats/{queue_id}", response_model=EtaStats)
async def get_queue_stats(
    queue_id: str,
    service: EtaService = Depends(get_eta_service),
):
    """Current-hour service-rate stats for a queue (defaults if none yet)."""
    return await service.get_latest_stats(queue_id)


@router.post("/stats/{queue_id}", response_model=EtaStats)
async def update_queue_stats(
    queue_id: str,
    update: ServiceStatsUpdate,
    service: EtaService = Depends(get_eta_service),
):
    """Record how many tickets a queue served over a time window."""
    try:
        return await service.update_service_stats(
            queue_id, update.served_count, update.window_seconds
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to update service stats",
        )
