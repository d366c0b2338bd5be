#!/usr/bin/env python3
"""Create payout tables, default settings and job records."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from app.config.database import async_engine
from app.models import Base
from app.services.distribution import DistributionScheduler
from app.services.settings_service import SettingsService

logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all tables, then seed settings and scheduled jobs."""
    logger.info("Creating tables (checkfirst=True)...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    distribution = DistributionScheduler()
    async with distribution.session_maker() as session:
        await SettingsService(session).seed_defaults()
        await session.commit()
    jobs = await distribution.ensure_jobs()

    await async_engine.dispose()
    logger.success(f"Database initialized: {len(jobs)} scheduled jobs")


if __name__ == "__main__":
    asyncio.run(init_database())
