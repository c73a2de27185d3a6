"""
Pydantic schemas for ETA tracking, service-rate stats and notifications.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TicketStatus(str, Enum):
    """Lifecycle states of a tracked ticket."""
    WAITING = "WAITING"
    NOTIFIED = "NOTIFIED"
    READY = "READY"
    COMPLETED = "COMPLETED"  # set by the queue service, never by the scheduler
    CANCELLED = "CANCELLED"  # set by the queue service, never by the scheduler


class NotificationChannel(str, Enum):
    """Delivery channels a customer can be reached on."""
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


# Domain records

class TicketEta(BaseModel):
    """Live countdown for one ticket waiting in a queue."""
    ticket_id: str
    queue_id: str
    channel: NotificationChannel = NotificationChannel.EMAIL
    address: Optional[str] = None  # where the pickup notification goes
    remaining_minutes: int = Field(..., ge=0)
    original_eta_minutes: int
    calculated_at: datetime
    updated_at: datetime
    notification_sent: bool = False
    status: TicketStatus = TicketStatus.WAITING

    class Config:
        from_attributes = True

    @property
    def is_active(self) -> bool:
        return self.remaining_minutes > 0


class EtaStats(BaseModel):
    """Smoothed service rate for one queue within one UTC hour window."""
    queue_id: str
    time_window: str  # e.g. "2026-10-18T09"
    served_count: int = 0
    ema_service_rate: float
    p50_wait_time_minutes: int
    p90_wait_time_minutes: int
    window_start: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# Notifications

class NotificationRequest(BaseModel):
    """A request to reach a customer about their ticket."""
    ticket_id: str
    channel: NotificationChannel = NotificationChannel.EMAIL
    address: Optional[str] = None
    message: Optional[str] = None


class NotificationResponse(BaseModel):
    """Outcome reported by a notifier."""
    ticket_id: str
    scheduled: bool
    status: NotificationStatus
    message: Optional[str] = None
    notification_id: Optional[str] = None


# API schemas

class EtaResponse(BaseModel):
    """ETA returned to callers of the calculate/track endpoints."""
    queue_id: str
    ticket_id: Optional[str] = None
    estimated_wait_minutes: int
    remaining_minutes: Optional[int] = None
    p50_wait_minutes: Optional[int] = None
    p90_wait_minutes: Optional[int] = None
    service_rate: Optional[float] = None
    status: Optional[TicketStatus] = None
    updated_at: datetime


class ServiceStatsUpdate(BaseModel):
    """Observed throughput for a queue over a time window."""
    served_count: int = Field(..., ge=0)
    window_seconds: int = Field(..., gt=0)
