"""
Notification dispatch for "ready soon" messages.

Delivery itself happens elsewhere: the WebhookNotifier hands the message
to an HTTP endpoint (mail/SMS/push gateway), the LoggingNotifier only logs
what it would have sent, and the NullNotifier drops everything.
"""

import logging
import uuid
from typing import Optional, Protocol

import httpx

from smartqueue.config import Settings
from smartqueue.schemas.eta import (
    NotificationRequest,
    NotificationResponse,
    NotificationStatus,
)

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(self, request: NotificationRequest) -> NotificationResponse: ...


class NullNotifier:
    """Notifier used when notifications are switched off."""

    async def notify(self, request: NotificationRequest) -> NotificationResponse:
        logger.debug("Notifier disabled, skip notification for ticket %s", request.ticket_id)
        return NotificationResponse(
            ticket_id=request.ticket_id,
            scheduled=False,
            status=NotificationStatus.SKIPPED,
            message="Notifications disabled",
        )


class LoggingNotifier:
    """Mock notifier: logs the would-be message and reports it as pending."""

    async def notify(self, request: NotificationRequest) -> NotificationResponse:
        notification_id = str(uuid.uuid4())
        logger.info(
            "MOCK NOTIFY | ticket=%s | channel=%s | to=%s | message=%r",
            request.ticket_id, request.channel.value, request.address, request.message,
        )
        return NotificationResponse(
            ticket_id=request.ticket_id,
            scheduled=True,
            status=NotificationStatus.PENDING,
            message="Notification scheduled successfully",
            notification_id=notification_id,
        )


class WebhookNotifier:
    """Posts notifications as JSON to a delivery gateway."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def notify(self, request: NotificationRequest) -> NotificationResponse:
        notification_id = str(uuid.uuid4())
        payload = {
            "notification_id": notification_id,
            "ticket_id": request.ticket_id,
            "channel": request.channel.value,
            "address": request.address,
            "message": request.message,
        }

        try:
            resp = await self._client.post(self.url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Webhook notification failed for ticket %s: %s", request.ticket_id, e)
            return NotificationResponse(
                ticket_id=request.ticket_id,
                scheduled=False,
                status=NotificationStatus.FAILED,
                message=f"Failed to schedule notification: {e}",
                notification_id=notification_id,
            )

        logger.info("Webhook -> HTTP %s | ticket=%s", resp.status_code, request.ticket_id)
        return NotificationResponse(
            ticket_id=request.ticket_id,
            scheduled=True,
            status=NotificationStatus.SENT,
            message="Notification sent",
            notification_id=notification_id,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def build_notifier(settings: Settings) -> Notifier:
    """Pick the notifier for the configured environment."""
    if settings.notification_webhook_url:
        return WebhookNotifier(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        )
    return LoggingNotifier()
