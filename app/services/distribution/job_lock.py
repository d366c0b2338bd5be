"""
Job run-lock module.

Distributed mutex over the scheduled_jobs table. Acquisition is a single
conditional UPDATE; an expired lock can be taken over by any runner.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.settings import settings
from app.models.enums import JobRunStatus
from app.repositories.scheduled_job_repository import ScheduledJobRepository
from app.utils.exceptions import LockContention


@dataclass
class ExecutionRecord:
    """One run of a scheduled job, as kept in execution_history."""

    started_at: datetime
    finished_at: datetime
    status: JobRunStatus
    duration_ms: int
    records_processed: int = 0
    records_failed: int = 0
    records_skipped: int = 0
    error: str | None = None
    trigger: str = "scheduled"
    runner: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "records_processed": self.records_processed,
            "records_failed": self.records_failed,
            "records_skipped": self.records_skipped,
            "error": self.error,
            "trigger": self.trigger,
            "runner": self.runner,
            **self.extra,
        }


@dataclass
class JobState:
    """Job counters after a run was recorded."""

    job_name: str
    consecutive_failures: int
    max_consecutive_failures: int
    released: bool

    @property
    def failure_threshold_reached(self) -> bool:
        return self.consecutive_failures >= self.max_consecutive_failures


class JobLockManager:
    """Acquires and releases scheduled job run-locks."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        runner_id: str | None = None,
        lock_buffer_seconds: int | None = None,
        history_size: int | None = None,
    ) -> None:
        """
        Initialize lock manager.

        Args:
            session_maker: Factory for lock sessions
            runner_id: Lock owner identity (defaults to settings.instance_id)
            lock_buffer_seconds: Added to the job timeout for lock expiry
            history_size: Execution records kept per job
        """
        self.session_maker = session_maker
        self.runner_id = runner_id or settings.instance_id
        self.lock_buffer_seconds = (
            settings.job_lock_buffer_seconds
            if lock_buffer_seconds is None
            else lock_buffer_seconds
        )
        self.history_size = history_size or settings.job_history_size
        self.logger = logger.bind(service="JobLockManager")

    async def acquire(self, job_name: str, now: datetime) -> int:
        """
        Take the run-lock of a job.

        Args:
            job_name: Job to lock
            now: Current time

        Returns:
            Run timeout of the job in seconds

        Raises:
            LockContention: Lock held by another runner or job disabled
            ValueError: Unknown job
        """
        async with self.session_maker() as session:
            async with session.begin():
                repo = ScheduledJobRepository(session)
                job = await repo.get_by_name(job_name)
                if job is None:
                    raise ValueError(f"Unknown job: {job_name}")

                timeout = job.timeout_seconds
                expires_at = now + timedelta(
                    seconds=timeout + self.lock_buffer_seconds
                )
                acquired = await repo.try_acquire(
                    job_name, self.runner_id, now, expires_at
                )
                if not acquired:
                    holder = "disabled" if not job.is_enabled else job.locked_by
                    raise LockContention(job_name, holder)

        self.logger.info(
            f"Lock on {job_name} acquired by {self.runner_id} "
            f"until {expires_at.isoformat()}"
        )
        return timeout

    async def release(self, job_name: str, record: ExecutionRecord) -> JobState:
        """
        Record a finished run and release the lock.

        The lock is released only if this runner still owns it; the run is
        recorded either way.

        Args:
            job_name: Locked job
            record: Execution record of the run

        Returns:
            JobState with updated failure counters
        """
        async with self.session_maker() as session:
            async with session.begin():
                repo = ScheduledJobRepository(session)
                job = await repo.get_by_name(job_name, fresh=True)

                history = [record.as_dict(), *(job.execution_history or [])]
                history = history[: self.history_size]

                if record.status == JobRunStatus.SUCCESS:
                    consecutive = 0
                elif record.status == JobRunStatus.FAILED:
                    consecutive = job.consecutive_failures + 1
                else:
                    consecutive = job.consecutive_failures

                values = {
                    "last_run_at": record.started_at,
                    "last_run_status": record.status.value,
                    "last_run_duration_ms": record.duration_ms,
                    "last_error": record.error,
                    "consecutive_failures": consecutive,
                    "total_executions": job.total_executions + 1,
                    "successful_executions": job.successful_executions
                    + (1 if record.status == JobRunStatus.SUCCESS else 0),
                    "failed_executions": job.failed_executions
                    + (1 if record.status == JobRunStatus.FAILED else 0),
                    "execution_history": history,
                }

                released = await repo.release(job_name, self.runner_id, **values)
                if not released:
                    self.logger.warning(
                        f"Lock on {job_name} no longer held by {self.runner_id}, "
                        f"recording run without release"
                    )
                    await repo.update(job.id, **values)

                state = JobState(
                    job_name=job_name,
                    consecutive_failures=consecutive,
                    max_consecutive_failures=job.max_consecutive_failures,
                    released=released,
                )

        self.logger.info(
            f"Lock on {job_name} released by {self.runner_id}: "
            f"{record.status.value} in {record.duration_ms}ms"
        )
        return state
