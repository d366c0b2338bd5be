"""
Payout scheduler process.

Enqueues the daily payout actors on their cron schedules. Runs are
idempotent and locked in the database, so several scheduler instances may
run side by side.
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from app.config.logging import setup_logging
from app.config.settings import settings
from app.services.distribution import BINARY_JOB, ROI_JOB, DistributionScheduler
from app.services.settings_service import SettingsService
from jobs.health import set_scheduler, start_health_server, stop_health_server
from jobs.tasks.payout_jobs import calculate_binary_income, distribute_daily_roi

# job_name -> (actor, settings attribute with the cron expression)
SCHEDULED_ACTORS = {
    ROI_JOB: (distribute_daily_roi, "roi_job_schedule"),
    BINARY_JOB: (calculate_binary_income, "binary_job_schedule"),
}


def create_scheduler() -> AsyncIOScheduler:
    """
    Build the APScheduler instance with one cron job per payout job.

    Returns:
        Scheduler (not started)
    """
    scheduler = AsyncIOScheduler(
        timezone=settings.scheduler_timezone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 300,
        },
    )

    for job_name, (actor, schedule_attr) in SCHEDULED_ACTORS.items():
        expression = getattr(settings, schedule_attr)
        scheduler.add_job(
            actor.send,
            trigger=CronTrigger.from_crontab(
                expression, timezone=settings.scheduler_timezone
            ),
            id=job_name,
            name=job_name,
            replace_existing=True,
        )
        logger.info(f"Job registered: {job_name} ({expression})")

    return scheduler


async def prepare_database(distribution: DistributionScheduler) -> None:
    """Seed missing business settings and job records."""
    async with distribution.session_maker() as session:
        await SettingsService(session).seed_defaults()
        await session.commit()
    await distribution.ensure_jobs()


async def main() -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    setup_logging()
    logger.info(f"Starting payout scheduler ({settings.instance_id})")

    distribution = DistributionScheduler()
    await prepare_database(distribution)

    scheduler = create_scheduler()
    scheduler.start()
    set_scheduler(scheduler, statistics=distribution.get_statistics)
    runner = await start_health_server(
        settings.health_check_host, settings.health_check_port
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        logger.info("Stopping payout scheduler...")
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)

        from app.config.database import async_engine

        await async_engine.dispose()
        logger.info("Payout scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
