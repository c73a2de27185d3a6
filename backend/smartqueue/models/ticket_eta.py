"""TicketEtaRecord model - persisted countdown for an in-flight ticket."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from smartqueue.database import Base
from smartqueue.schemas.eta import NotificationChannel, TicketStatus


class TicketEtaRecord(Base):
    """
    Row in the ticket_eta table.

    Rows only exist while the ticket is counting down; the scheduler
    deletes them once remaining_minutes reaches zero.
    """

    __tablename__ = "ticket_eta"

    ticket_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    queue_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Notification target
    channel: Mapped[str] = mapped_column(
        String(20),
        default=NotificationChannel.EMAIL.value,
        nullable=False,
    )
    address: Mapped[str | None] = mapped_column(String(255))

    # Countdown
    remaining_minutes: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    original_eta_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=TicketStatus.WAITING.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<TicketEtaRecord {self.ticket_id} {self.status} {self.remaining_minutes}min>"
