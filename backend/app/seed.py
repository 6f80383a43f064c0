"""
Database seed script.
Creates tables and fills the analytics table with a synthetic year of events.
Run with: python -m app.seed [count]
"""

import asyncio
import os
import random
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator

from sqlalchemy import func, select

from app.core.database import async_session_factory, engine, Base
from app.core.logging import setup_logging, get_logger
from app.models.analytics import CATEGORIES, REGIONS, SOURCES, AnalyticsEvent
from app.models.user import User  # noqa: F401
from app.schemas.analytics import AnalyticsEventCreate
from app.services.analytics_service import AnalyticsService
from app.services.realtime_service import NEW_SALE, publish_event

DEFAULT_RECORD_COUNT = 10_000
SEED_START = datetime(2024, 1, 1, tzinfo=timezone.utc)
SEED_END = datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


def _money(rng: random.Random, low: float, high: float, places: int) -> Decimal:
    return Decimal(str(round(rng.uniform(low, high), places)))


def generate_events(
    count: int = DEFAULT_RECORD_COUNT,
    seed: int = 2024,
    start: datetime = SEED_START,
    end: datetime = SEED_END,
) -> Iterator[AnalyticsEventCreate]:
    """Yield ``count`` reproducible events spread uniformly over [start, end]."""
    rng = random.Random(seed)
    span = int((end - start).total_seconds())

    for _ in range(count):
        yield AnalyticsEventCreate(
            timestamp=datetime.fromtimestamp(
                start.timestamp() + rng.randint(0, span), tz=timezone.utc,
            ),
            revenue=_money(rng, 100, 50000, 2),
            users=rng.randint(10, 5000),
            sessions=rng.randint(15, 8000),
            bounce_rate=_money(rng, 20, 85, 1),
            conversion=_money(rng, 0.5, 15, 2),
            region=rng.choice(REGIONS),
            category=rng.choice(CATEGORIES),
            source=rng.choice(SOURCES),
        )


async def seed_database(count: int = DEFAULT_RECORD_COUNT) -> int:
    """Seed analytics events unless the table already has rows. Returns rows inserted."""
    setup_logging()
    logger = get_logger("seed")

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Tables created")

    async with async_session_factory() as session:
        existing = (await session.execute(select(func.count(AnalyticsEvent.id)))).scalar() or 0
        if existing:
            logger.info("📦 Analytics table already has %d rows, skipping seed", existing)
            return 0

        logger.info("🌱 Seeding database with %d analytics records...", count)
        service = AnalyticsService(session)
        result = await service.ingest_events(generate_events(count))
        await session.commit()

    await publish_event(NEW_SALE, result)

    logger.info("═" * 50)
    logger.info("🌱 Database seed complete!")
    logger.info("  Records: %d", result["count"])
    logger.info("  Revenue: %.2f", result["revenue"])
    logger.info("═" * 50)
    return result["count"]


if __name__ == "__main__":
    if os.getenv("APP_ENV") == "production":
        print("❌ Seeding is disabled in production. Set APP_ENV to 'development' to seed.")
        raise SystemExit(1)

    record_count = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_RECORD_COUNT
    asyncio.run(seed_database(record_count))
