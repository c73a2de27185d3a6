"""
ETA Calculator

Turns a queue position and a smoothed service rate into a wait estimate
in whole minutes.

The service rate is first adjusted for the local time of day (all
factors stack):

    peak hours   09:00-11:00, 14:00-16:00   x0.7
    lunch        12:00-13:30                x0.5
    weekend      Saturday, Sunday           x0.8
    evening      18:00-20:00                x1.2

and clamped to at least 0.1 tickets/minute. The raw ETA
(position / rate) is then scaled by a deep-queue penalty
(position > 10: x1.1), a day-of-week factor and a flat 5% margin.
All hour ranges exclude their bounds.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, time
from typing import Callable, Optional

from smartqueue.config import Settings
from smartqueue.schemas.eta import EtaStats
from smartqueue.services.rate_estimator import ServiceRateEstimator
from smartqueue.utils.timezone import from_utc, utc_now

logger = logging.getLogger(__name__)

MIN_SERVICE_RATE = 0.1
MIN_ETA_MINUTES = 1
DEEP_QUEUE_POSITION = 10
SAFETY_MARGIN = 1.05

# Degraded estimate when stats cannot be read
FALLBACK_MINUTES_PER_POSITION = 5
FALLBACK_UNKNOWN_POSITION_MINUTES = 10
FALLBACK_P50_MINUTES = 5
FALLBACK_P90_MINUTES = 10

PEAK_HOURS = [(time(9, 0), time(11, 0)), (time(14, 0), time(16, 0))]
LUNCH_HOURS = (time(12, 0), time(13, 30))
EVENING_RUSH = (time(18, 0), time(20, 0))

# Monday=0 ... Sunday=6; unlisted days are x1.0
DAY_OF_WEEK_FACTORS = {
    0: 1.15,
    4: 1.1,
    5: 0.9,
    6: 0.9,
}


@dataclass
class EtaEstimate:
    """Result of an ETA calculation."""
    estimated_wait_minutes: int
    p50_wait_minutes: int
    p90_wait_minutes: int
    service_rate: float
    degraded: bool = False


def _between(t: time, bounds: tuple[time, time]) -> bool:
    start, end = bounds
    return start < t < end


def is_peak_hour(local: datetime) -> bool:
    t = local.time()
    return any(_between(t, bounds) for bounds in PEAK_HOURS)


def is_lunch_time(local: datetime) -> bool:
    return _between(local.time(), LUNCH_HOURS)


def is_weekend(local: datetime) -> bool:
    return local.weekday() >= 5


def is_evening_rush(local: datetime) -> bool:
    return _between(local.time(), EVENING_RUSH)


def smart_service_rate(base_rate: float, local: datetime) -> float:
    """Adjust a service rate for the local time of day, never below 0.1."""
    multiplier = 1.0
    if is_peak_hour(local):
        multiplier *= 0.7
    if is_lunch_time(local):
        multiplier *= 0.5
    if is_weekend(local):
        multiplier *= 0.8
    if is_evening_rush(local):
        multiplier *= 1.2
    return max(MIN_SERVICE_RATE, base_rate * multiplier)


def apply_eta_factors(base_eta: float, local: datetime, position: int) -> float:
    """Scale a raw ETA by queue depth, day of week and the safety margin."""
    eta = base_eta
    if position > DEEP_QUEUE_POSITION:
        eta *= 1.1
    eta *= DAY_OF_WEEK_FACTORS.get(local.weekday(), 1.0)
    eta *= SAFETY_MARGIN
    return eta


class EtaCalculator:
    """Computes initial ETAs from queue position and service-rate stats."""

    def __init__(
        self,
        settings: Settings,
        rate_estimator: Optional[ServiceRateEstimator] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.rate_estimator = rate_estimator
        self.clock = clock

    def calculate(
        self,
        queue_id: str,
        position: int,
        stats: Optional[EtaStats] = None,
        now: Optional[datetime] = None,
    ) -> EtaEstimate:
        """
        Calculate the ETA for a position in a queue.

        Args:
            queue_id: Queue identifier (for logging)
            position: 1-based position in the queue
            stats: Current-hour stats, or None to use configured defaults
            now: Moment of calculation (UTC); defaults to the clock

        Returns:
            EtaEstimate with at least one minute of wait
        """
        now = now or self.clock()
        local = from_utc(now, self.settings.eta_timezone)

        if stats is not None:
            base_rate = stats.ema_service_rate
            p50 = stats.p50_wait_time_minutes
            p90 = stats.p90_wait_time_minutes
        else:
            base_rate = self.settings.eta_default_service_rate
            p50 = self.settings.eta_default_p50_minutes
            p90 = self.settings.eta_default_p90_minutes

        rate = smart_service_rate(base_rate, local)
        base_eta = position / rate
        final_eta = apply_eta_factors(base_eta, local, position)
        minutes = max(MIN_ETA_MINUTES, math.ceil(final_eta))

        logger.info(
            "ETA calculated - Queue: %s, Position: %s, Base: %.1fmin, Final: %dmin",
            queue_id, position, base_eta, minutes,
        )
        return EtaEstimate(
            estimated_wait_minutes=minutes,
            p50_wait_minutes=p50,
            p90_wait_minutes=p90,
            service_rate=rate,
        )

    def fallback(self, position: Optional[int]) -> EtaEstimate:
        """Crude estimate used when live stats are unavailable."""
        if position is not None:
            minutes = max(MIN_ETA_MINUTES, position * FALLBACK_MINUTES_PER_POSITION)
        else:
            minutes = FALLBACK_UNKNOWN_POSITION_MINUTES
        return EtaEstimate(
            estimated_wait_minutes=minutes,
            p50_wait_minutes=FALLBACK_P50_MINUTES,
            p90_wait_minutes=FALLBACK_P90_MINUTES,
            service_rate=self.settings.eta_default_service_rate,
            degraded=True,
        )

    async def estimate(
        self,
        queue_id: str,
        position: Optional[int],
        now: Optional[datetime] = None,
    ) -> EtaEstimate:
        """
        Look up the queue's current stats and calculate an ETA.

        Never raises on storage failures: a lookup error yields the
        fallback estimate instead.
        """
        if position is None:
            logger.warning("No position for queue %s, using fallback ETA", queue_id)
            return self.fallback(None)

        stats = None
        if self.rate_estimator is not None:
            try:
                stats = await self.rate_estimator.latest(queue_id)
            except Exception:
                logger.exception("Error loading stats for queue %s, using fallback ETA", queue_id)
                return self.fallback(position)

        return self.calculate(queue_id, position, stats, now)
