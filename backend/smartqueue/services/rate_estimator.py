"""
Service Rate Estimator

Keeps an exponentially-weighted moving average (EMA) of how many tickets
a queue serves per minute, one record per queue per UTC hour.

    new_ema = alpha * observed + (1 - alpha) * old_ema

A higher alpha follows recent throughput faster, a lower alpha smooths
out noise. Records never carry over between hours: the first observation
in a new hour starts a fresh record with seeded p50/p90 placeholders.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from smartqueue.config import Settings
from smartqueue.schemas.eta import EtaStats
from smartqueue.services.store import StatsStore
from smartqueue.utils.timezone import time_window, utc_now, window_start

logger = logging.getLogger(__name__)


def ema(old: float, observed: float, alpha: float) -> float:
    """One EMA step."""
    return alpha * observed + (1 - alpha) * old


class ServiceRateEstimator:
    """Maintains per-queue, per-hour smoothed service rates."""

    def __init__(
        self,
        stats_store: StatsStore,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.stats_store = stats_store
        self.settings = settings
        self.clock = clock

    def current_time_window(self) -> str:
        return time_window(self.clock())

    async def latest(self, queue_id: str) -> Optional[EtaStats]:
        """Stats for the current hour, or None. Store errors propagate."""
        return await self.stats_store.get(queue_id, self.current_time_window())

    async def latest_or_default(self, queue_id: str) -> EtaStats:
        """Stats for the current hour, or an unsaved record of defaults."""
        stats = await self.latest(queue_id)
        return stats if stats is not None else self.default_stats(queue_id)

    def default_stats(self, queue_id: str) -> EtaStats:
        """Unsaved record built from the configured defaults."""
        now = self.clock()
        return EtaStats(
            queue_id=queue_id,
            time_window=time_window(now),
            served_count=0,
            ema_service_rate=self.settings.eta_default_service_rate,
            p50_wait_time_minutes=self.settings.eta_default_p50_minutes,
            p90_wait_time_minutes=self.settings.eta_default_p90_minutes,
            window_start=window_start(now),
            updated_at=now,
        )

    async def update_rate(
        self,
        queue_id: str,
        observed_rate: float,
        alpha: Optional[float] = None,
        p50_seed: Optional[int] = None,
        p90_seed: Optional[int] = None,
    ) -> EtaStats:
        """
        Fold one throughput observation into the current hour's EMA.

        Args:
            queue_id: Queue the observation belongs to
            observed_rate: Tickets served per minute
            alpha: Smoothing factor in (0, 1]; defaults to ETA_EMA_ALPHA
            p50_seed: p50 placeholder for a fresh window (ETA_SEED_P50_MINUTES)
            p90_seed: p90 placeholder for a fresh window (ETA_SEED_P90_MINUTES)

        Returns:
            The persisted stats record

        Raises:
            ValueError: If alpha or observed_rate is out of range
            StoreError: If the stats store cannot be read or written
        """
        if alpha is None:
            alpha = self.settings.eta_ema_alpha
        if not 0 < alpha <= 1:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        if observed_rate < 0:
            raise ValueError(f"observed_rate must be >= 0, got {observed_rate}")

        now = self.clock()
        window = time_window(now)

        try:
            stats = await self.stats_store.get(queue_id, window)
        except Exception:
            logger.exception("Error loading ETA stats for queue %s window %s", queue_id, window)
            raise

        if stats is not None:
            stats.ema_service_rate = ema(stats.ema_service_rate, observed_rate, alpha)
            stats.served_count += 1
            stats.updated_at = now
        else:
            stats = EtaStats(
                queue_id=queue_id,
                time_window=window,
                served_count=1,
                ema_service_rate=observed_rate,
                p50_wait_time_minutes=(
                    p50_seed if p50_seed is not None else self.settings.eta_seed_p50_minutes
                ),
                p90_wait_time_minutes=(
                    p90_seed if p90_seed is not None else self.settings.eta_seed_p90_minutes
                ),
                window_start=window_start(now),
                updated_at=now,
            )

        try:
            await self.stats_store.put(stats)
        except Exception:
            logger.exception("Error saving ETA stats for queue %s", queue_id)
            raise

        logger.info(
            "Service rate for queue %s (%s): ema=%.3f served=%d",
            queue_id, window, stats.ema_service_rate, stats.served_count,
        )
        return stats

    async def record_served(
        self,
        queue_id: str,
        served_count: int,
        window_seconds: int,
    ) -> EtaStats:
        """Convert a served count over a window into a rate and record it."""
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {window_seconds}")
        if served_count < 0:
            raise ValueError(f"served_count must be >= 0, got {served_count}")

        rate = served_count / (window_seconds / 60.0)
        logger.info(
            "Updating service stats for queue %s, served: %d, window: %ds",
            queue_id, served_count, window_seconds,
        )
        return await self.update_rate(queue_id, rate)
