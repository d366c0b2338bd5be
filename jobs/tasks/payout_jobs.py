"""
Payout job tasks.

Daily ROI distribution and binary pairing actors. Each run goes through
DistributionScheduler, so a message delivered to several workers (or a
scheduled and a manual run at the same time) is executed only once.
"""

import dramatiq
from loguru import logger

import jobs.broker  # noqa: F401  (registers the Redis broker)
from app.config.settings import settings
from app.models.enums import JobTrigger
from app.services.audit_service import AuditTrail
from app.services.distribution import BINARY_JOB, ROI_JOB, DistributionScheduler
from app.services.events import EventBus
from jobs.async_runner import run_async, task_session_maker

# The run-lock expires after timeout + buffer; the actor must not be killed
# before that.
PAYOUT_TIME_LIMIT_MS = (
    settings.job_timeout_seconds + settings.job_lock_buffer_seconds
) * 1000


async def run_payout_job_async(
    job_name: str,
    trigger: str = JobTrigger.SCHEDULED.value,
    database_url: str | None = None,
) -> dict:
    """
    Run one payout job with a task-local engine.

    Events of the run are recorded in the audit trail.

    Args:
        job_name: ROI_JOB or BINARY_JOB
        trigger: scheduled or manual
        database_url: Override of settings.database_url

    Returns:
        Summary of the run
    """
    async with task_session_maker(database_url) as session_maker:
        events = EventBus()
        AuditTrail(session_maker).subscribe(events)

        scheduler = DistributionScheduler(session_maker, events=events)
        report = await scheduler.run_job(job_name, trigger=trigger)

    return {
        "job_name": report.job_name,
        "status": report.status,
        "processed": report.processed,
        "skipped": report.skipped,
        "failed": report.failed,
        "total_amount": str(report.total_amount),
        "error": report.error,
    }


def _run_payout_job(job_name: str, trigger: str) -> dict:
    logger.info(f"Starting {job_name} ({trigger})...")
    try:
        result = run_async(run_payout_job_async(job_name, trigger))
    except Exception as e:
        logger.exception(f"{job_name} failed: {e}")
        return {"job_name": job_name, "status": "error", "error": str(e)}

    logger.info(
        f"{job_name} complete: {result['status']}, "
        f"{result['processed']} processed, {result['skipped']} skipped, "
        f"{result['failed']} failed, total: {result['total_amount']}"
    )
    return result


@dramatiq.actor(max_retries=0, time_limit=PAYOUT_TIME_LIMIT_MS)
def distribute_daily_roi(trigger: str = JobTrigger.SCHEDULED.value) -> dict:
    """Pay the daily ROI of every due investment."""
    return _run_payout_job(ROI_JOB, trigger)


@dramatiq.actor(max_retries=0, time_limit=PAYOUT_TIME_LIMIT_MS)
def calculate_binary_income(trigger: str = JobTrigger.SCHEDULED.value) -> dict:
    """Run the daily binary pairing cycle for every candidate participant."""
    return _run_payout_job(BINARY_JOB, trigger)
