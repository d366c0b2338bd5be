"""Integration tests for the payout job task bodies."""

from decimal import Decimal

import pytest

from app.models import AuditLog
from app.services.distribution import ROI_JOB, DistributionScheduler
from jobs.tasks.payout_jobs import run_payout_job_async


@pytest.fixture
def database_url(engine):
    return engine.url.render_as_string(hide_password=False)


@pytest.fixture
async def jobs_ready(session_maker):
    await DistributionScheduler(session_maker, concurrency=1).ensure_jobs()


async def test_roi_task_pays_and_audits(data, database_url, jobs_ready):
    investor = await data.register("investor")
    await data.invest(investor.id, amount="1000", daily_rate="0.01")

    result = await run_payout_job_async(ROI_JOB, database_url=database_url)

    assert result["status"] == "success"
    assert result["processed"] == 1
    assert Decimal(result["total_amount"]) == Decimal("10")
    assert (await data.wallet(investor.id)).roi_balance == Decimal("10")

    entries = await data.all(AuditLog, action="job.completed")
    assert len(entries) == 1
    assert entries[0].entity_id == ROI_JOB


async def test_manual_trigger_is_recorded(data, database_url, jobs_ready):
    result = await run_payout_job_async(
        ROI_JOB, trigger="manual", database_url=database_url
    )

    assert result["status"] == "success"
    job = await data.job(ROI_JOB)
    assert job.execution_history[0]["trigger"] == "manual"
