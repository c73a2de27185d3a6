"""
Seed the database with starting service-rate stats.

Gives each known queue an EMA for the current hour so the first
customers get a realistic ETA instead of the configured default.

Run with: python -m scripts.seed_data
"""

import asyncio

from smartqueue.config import get_settings
from smartqueue.database import async_session_maker, init_db
from smartqueue.services.rate_estimator import ServiceRateEstimator
from smartqueue.services.sql_store import SqlStatsStore


# Typical throughput per queue (tickets served per minute)
QUEUE_SERVICE_RATES = {
    "counter-main": 1.5,
    "counter-express": 3.0,
    "pharmacy": 0.6,
}


async def seed_stats() -> None:
    """Seed or refresh the current-hour stats for every queue."""
    settings = get_settings()
    estimator = ServiceRateEstimator(SqlStatsStore(async_session_maker), settings)

    print(f"\nTime window: {estimator.current_time_window()}")
    for queue_id, rate in QUEUE_SERVICE_RATES.items():
        existing = await estimator.latest(queue_id)
        stats = await estimator.update_rate(queue_id, rate)
        if existing:
            print(f"  ~ Updated: {queue_id} ema={stats.ema_service_rate:.2f}/min")
        else:
            print(f"  + Created: {queue_id} ema={stats.ema_service_rate:.2f}/min")


async def main():
    """Main entry point."""
    print("=" * 50)
    print("Seeding SmartQueue ETA Database")
    print("=" * 50)

    print("\nInitializing database...")
    await init_db()

    print("\nSeeding service-rate stats...")
    await seed_stats()
    print("\n✓ Seed data complete!")


if __name__ == "__main__":
    asyncio.run(main())
