"""
Distribution services package.

Contains:
- batch: Per-item batch runner with bounded parallelism
- roi_distributor: Daily ROI job
- binary_distributor: Daily binary pairing job
- job_lock: Compare-and-swap run-lock on scheduled_jobs
- scheduler: Lock, run, record and alert for each job
"""

from app.services.distribution.batch import BatchJobHandler, BatchReport
from app.services.distribution.binary_distributor import BinaryPairingDistributor
from app.services.distribution.job_lock import (
    ExecutionRecord,
    JobLockManager,
    JobState,
)
from app.services.distribution.roi_distributor import RoiDistributor
from app.services.distribution.scheduler import (
    BINARY_JOB,
    JOB_DEFINITIONS,
    ROI_JOB,
    DistributionScheduler,
    JobRunReport,
)


__all__ = [
    "BINARY_JOB",
    "JOB_DEFINITIONS",
    "ROI_JOB",
    "BatchJobHandler",
    "BatchReport",
    "BinaryPairingDistributor",
    "DistributionScheduler",
    "ExecutionRecord",
    "JobLockManager",
    "JobRunReport",
    "JobState",
    "RoiDistributor",
]
