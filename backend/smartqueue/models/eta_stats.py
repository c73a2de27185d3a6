"""EtaStatsRecord model - smoothed service rate per queue and hour."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from smartqueue.database import Base


class EtaStatsRecord(Base):
    """
    Service-rate statistics for one queue in one UTC hour window.

    Used to turn a queue position into a wait estimate.
    A new hour always starts a new row; rows are never merged.
    """

    __tablename__ = "eta_stats"

    queue_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    time_window: Mapped[str] = mapped_column(String(13), primary_key=True)  # YYYY-MM-DDTHH

    served_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ema_service_rate: Mapped[float] = mapped_column(Float, nullable=False)

    # Seeded placeholders, not derived from samples
    p50_wait_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    p90_wait_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    window_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<EtaStatsRecord {self.queue_id} {self.time_window} ema={self.ema_service_rate:.3f}>"
