"""
Distribution scheduler.

Runs the daily payout jobs under a distributed run-lock:
idle -> running -> (success | partial | failed) -> idle.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import settings
from app.models.enums import AuditSeverity, JobRunStatus, JobTrigger
from app.models.scheduled_job import ScheduledJob
from app.repositories.scheduled_job_repository import ScheduledJobRepository
from app.services.base_service import log_operation
from app.services.distribution.batch import BatchJobHandler, BatchReport
from app.services.distribution.binary_distributor import BinaryPairingDistributor
from app.services.distribution.job_lock import ExecutionRecord, JobLockManager
from app.services.distribution.roi_distributor import RoiDistributor
from app.services.events import EventBus, PayoutEvent, PayoutEvents, event_bus
from app.services.settings_service import PayoutConfig, SettingsService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import LockContention


ROI_JOB = "daily_roi_distribution"
BINARY_JOB = "binary_income_calculation"

# job_name -> (settings attribute holding the cron expression, description)
JOB_DEFINITIONS: dict[str, tuple[str, str]] = {
    ROI_JOB: ("roi_job_schedule", "Daily ROI distribution to investors"),
    BINARY_JOB: ("binary_job_schedule", "Daily binary pairing commission"),
}


@dataclass
class JobRunReport:
    """Outcome of one run_job call."""

    job_name: str
    trigger: str
    status: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total_amount: Decimal = Decimal("0")
    duration_ms: int = 0
    error: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ran(self) -> bool:
        """False when the run was a no-op because the lock was held."""
        return self.status != "locked"


def _run_status(report: BatchReport) -> JobRunStatus:
    if report.failed == 0:
        return JobRunStatus.SUCCESS
    if report.processed + report.skipped > 0:
        return JobRunStatus.PARTIAL
    return JobRunStatus.FAILED


class DistributionScheduler:
    """
    Distribution scheduler.

    run_job is safe to call from several processes at once: only the runner
    that wins the lock does work, the others return a "locked" report.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        events: EventBus | None = None,
        runner_id: str | None = None,
        concurrency: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            session_maker: Session factory (defaults to the application one)
            events: Event bus for job events
            runner_id: Lock owner identity
            concurrency: Items processed in parallel per run
            clock: Current time provider
        """
        if session_maker is None:
            from app.config.database import async_session_maker

            session_maker = async_session_maker
        self.session_maker = session_maker
        self.events = events or event_bus
        self.concurrency = concurrency or settings.job_concurrency
        self.clock = clock
        self.lock = JobLockManager(session_maker, runner_id=runner_id)
        self.logger = logger.bind(service="DistributionScheduler")
        self.handlers: dict[str, BatchJobHandler] = {
            ROI_JOB: RoiDistributor(session_maker, events=self.events),
            BINARY_JOB: BinaryPairingDistributor(session_maker, events=self.events),
        }

    def register_handler(self, job_name: str, handler: BatchJobHandler) -> None:
        """Register (or replace) the handler of a job."""
        self.handlers[job_name] = handler

    async def ensure_jobs(self) -> list[ScheduledJob]:
        """
        Create job records that do not exist yet.

        Returns:
            All known job records
        """
        jobs = []
        async with self.session_maker() as session:
            async with session.begin():
                repo = ScheduledJobRepository(session)
                for job_name in self.handlers:
                    job = await repo.get_by_name(job_name)
                    if job is None:
                        schedule_attr, description = JOB_DEFINITIONS.get(
                            job_name, ("", job_name)
                        )
                        job = await repo.create(
                            job_name=job_name,
                            schedule=getattr(settings, schedule_attr, "manual"),
                            description=description,
                            timeout_seconds=settings.job_timeout_seconds,
                            max_consecutive_failures=(
                                settings.job_max_consecutive_failures
                            ),
                        )
                        self.logger.info(f"Job {job_name} created")
                    jobs.append(job)
        return jobs

    async def run_now(self, job_name: str) -> JobRunReport:
        """Run a job immediately through the normal locking path."""
        return await self.run_job(job_name, trigger=JobTrigger.MANUAL)

    @log_operation
    async def run_job(
        self, job_name: str, trigger: JobTrigger | str = JobTrigger.SCHEDULED
    ) -> JobRunReport:
        """
        Run a job if its lock can be acquired.

        Args:
            job_name: Job to run
            trigger: scheduled or manual

        Returns:
            JobRunReport (status "locked" when another runner holds the lock)

        Raises:
            ValueError: Unknown job
            OperationalError: Storage unavailable while acquiring the lock
        """
        handler = self.handlers.get(job_name)
        if handler is None:
            raise ValueError(f"Unknown job: {job_name}")
        trigger = JobTrigger(trigger).value

        started_at = self.clock()
        try:
            timeout = await self.lock.acquire(job_name, started_at)
        except LockContention as e:
            self.logger.info(f"Run of {job_name} skipped: {e}")
            return JobRunReport(job_name=job_name, trigger=trigger, status="locked")

        self.logger.info(f"Job {job_name} started ({trigger})")
        monotonic_start = time.monotonic()
        batch = BatchReport()
        error: str | None = None

        try:
            config = await self._load_config()
            await asyncio.wait_for(
                handler.run(config, started_at, batch, self.concurrency),
                timeout=timeout,
            )
            status = _run_status(batch)
            if status != JobRunStatus.SUCCESS:
                error = "; ".join(batch.errors[:3]) or None
        except TimeoutError:
            status = JobRunStatus.FAILED
            error = f"Run timed out after {timeout}s"
            self.logger.error(f"Job {job_name} timed out after {timeout}s")
        except Exception as e:
            status = JobRunStatus.FAILED
            error = f"{type(e).__name__}: {e}"
            self.logger.exception(f"Job {job_name} failed: {e}")

        duration_ms = int((time.monotonic() - monotonic_start) * 1000)
        record = ExecutionRecord(
            started_at=started_at,
            finished_at=self.clock(),
            status=status,
            duration_ms=duration_ms,
            records_processed=batch.processed,
            records_failed=batch.failed,
            records_skipped=batch.skipped,
            error=error,
            trigger=trigger,
            runner=self.lock.runner_id,
            extra={"total_amount": str(batch.total_amount)},
        )
        state = await self.lock.release(job_name, record)

        await self.events.emit(
            PayoutEvent(
                name=PayoutEvents.JOB_COMPLETED,
                entity="scheduled_job",
                entity_id=job_name,
                payload=record.as_dict(),
                severity=(
                    AuditSeverity.INFO
                    if status == JobRunStatus.SUCCESS
                    else AuditSeverity.WARNING
                ),
            )
        )
        if status == JobRunStatus.FAILED and state.failure_threshold_reached:
            self.logger.error(
                f"Job {job_name} failed {state.consecutive_failures} times in a row"
            )
            await self.events.emit(
                PayoutEvent(
                    name=PayoutEvents.JOB_FAILURE_THRESHOLD,
                    entity="scheduled_job",
                    entity_id=job_name,
                    payload={
                        "consecutive_failures": state.consecutive_failures,
                        "max_consecutive_failures": state.max_consecutive_failures,
                        "last_error": error,
                    },
                    severity=AuditSeverity.CRITICAL,
                )
            )

        self.logger.info(
            f"Job {job_name} finished: {status.value}, "
            f"processed={batch.processed}, skipped={batch.skipped}, "
            f"failed={batch.failed}, total={batch.total_amount}, "
            f"{duration_ms}ms"
        )
        return JobRunReport(
            job_name=job_name,
            trigger=trigger,
            status=status.value,
            processed=batch.processed,
            skipped=batch.skipped,
            failed=batch.failed,
            total_amount=batch.total_amount,
            duration_ms=duration_ms,
            error=error,
            errors=list(batch.errors),
        )

    async def get_statistics(self, job_name: str) -> dict | None:
        """
        Get run statistics of a job.

        Returns:
            Statistics dict or None for an unknown job
        """
        async with self.session_maker() as session:
            job = await ScheduledJobRepository(session).get_by_name(job_name)
            if job is None:
                return None

            durations = [
                run["duration_ms"]
                for run in job.execution_history or []
                if run.get("duration_ms") is not None
            ]
            return {
                "job_name": job.job_name,
                "schedule": job.schedule,
                "is_enabled": job.is_enabled,
                "is_locked": job.is_locked,
                "locked_by": job.locked_by,
                "last_run_at": job.last_run_at,
                "last_run_status": job.last_run_status,
                "consecutive_failures": job.consecutive_failures,
                "total_executions": job.total_executions,
                "success_rate": job.success_rate,
                "average_duration_ms": (
                    int(sum(durations) / len(durations)) if durations else None
                ),
                "recent_runs": list(job.execution_history or []),
            }

    async def _load_config(self) -> PayoutConfig:
        async with self.session_maker() as session:
            return await SettingsService(session).load_config()
