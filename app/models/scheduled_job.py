"""
ScheduledJob model.

Persistent state of a recurring batch job: run-lock, counters and a
bounded execution history.
"""

from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import JobStatus
from app.models.types import JSONType, UTCDateTime, utc_default


class ScheduledJob(Base):
    """
    ScheduledJob entity.

    The lock is held when is_locked is true and lock_expires_at is in the
    future. An expired lock may be taken over by any runner.

    execution_history holds the newest runs first:
        {"started_at", "finished_at", "status", "duration_ms",
         "records_processed", "records_failed", "error", "trigger",
         "runner"}
    """

    __tablename__ = "scheduled_jobs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    job_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    schedule: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.IDLE.value
    )

    # Run-lock
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    lock_expires_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    timeout_seconds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=300
    )

    # Last run
    last_run_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_run_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    last_run_duration_ms: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Counters
    consecutive_failures: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    max_consecutive_failures: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3
    )
    total_executions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    successful_executions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    failed_executions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    execution_history: Mapped[list[dict]] = mapped_column(
        JSONType, nullable=False, default=list
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default, onupdate=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ScheduledJob(job_name={self.job_name}, status={self.status}, "
            f"locked_by={self.locked_by})>"
        )

    @property
    def success_rate(self) -> float:
        """Share of successful runs in percent."""
        if not self.total_executions:
            return 0.0
        return round(self.successful_executions / self.total_executions * 100, 2)
