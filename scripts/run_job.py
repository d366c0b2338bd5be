#!/usr/bin/env python3
"""Run a payout job immediately (manual trigger) and print its report."""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from app.config.database import async_engine
from app.config.logging import setup_logging
from app.services.audit_service import AuditTrail
from app.services.distribution import JOB_DEFINITIONS, DistributionScheduler
from app.services.events import event_bus


async def run(job_name: str) -> int:
    AuditTrail().subscribe(event_bus)
    scheduler = DistributionScheduler()
    await scheduler.ensure_jobs()
    report = await scheduler.run_now(job_name)
    await async_engine.dispose()

    logger.info(
        f"{report.job_name}: {report.status}, processed={report.processed}, "
        f"skipped={report.skipped}, failed={report.failed}, "
        f"total={report.total_amount}"
    )
    for error in report.errors:
        logger.warning(error)
    return 0 if report.status in ("success", "partial", "locked") else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("job_name", choices=sorted(JOB_DEFINITIONS))
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(run(args.job_name)))
