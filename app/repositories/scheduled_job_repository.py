"""
ScheduledJob repository.

Job state access and the compare-and-swap run-lock.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import JobStatus
from app.models.scheduled_job import ScheduledJob
from app.repositories.base import BaseRepository


class ScheduledJobRepository(BaseRepository[ScheduledJob]):
    """Repository for ScheduledJob entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(ScheduledJob, session)

    async def get_by_name(
        self, job_name: str, fresh: bool = False
    ) -> ScheduledJob | None:
        """
        Get job by name.

        Args:
            job_name: Unique job name
            fresh: Reload attributes even if the job is already in the session

        Returns:
            ScheduledJob or None
        """
        stmt = select(ScheduledJob).where(ScheduledJob.job_name == job_name)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def try_acquire(
        self,
        job_name: str,
        runner_id: str,
        now: datetime,
        expires_at: datetime,
    ) -> bool:
        """
        Acquire the run-lock if it is free or expired.

        Args:
            job_name: Job to lock
            runner_id: Lock owner
            now: Current time
            expires_at: Lock expiry

        Returns:
            True if this runner now holds the lock
        """
        changed = await self.update_where(
            [
                ScheduledJob.job_name == job_name,
                ScheduledJob.is_enabled.is_(True),
                or_(
                    ScheduledJob.is_locked.is_(False),
                    ScheduledJob.lock_expires_at.is_(None),
                    ScheduledJob.lock_expires_at <= now,
                ),
            ],
            is_locked=True,
            locked_by=runner_id,
            locked_at=now,
            lock_expires_at=expires_at,
            status=JobStatus.RUNNING.value,
        )
        return changed == 1

    async def release(
        self, job_name: str, runner_id: str, **values: Any
    ) -> bool:
        """
        Release the run-lock held by runner_id and store run results.

        Args:
            job_name: Locked job
            runner_id: Expected lock owner
            **values: Counters and history to store

        Returns:
            True if released, False if the lock was taken over meanwhile
        """
        changed = await self.update_where(
            [
                ScheduledJob.job_name == job_name,
                ScheduledJob.locked_by == runner_id,
                ScheduledJob.is_locked.is_(True),
            ],
            is_locked=False,
            locked_by=None,
            locked_at=None,
            lock_expires_at=None,
            status=JobStatus.IDLE.value,
            **values,
        )
        return changed == 1
