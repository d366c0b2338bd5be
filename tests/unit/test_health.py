"""Unit tests for the scheduler health endpoints."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from jobs import health


@pytest.fixture(autouse=True)
def reset_registration():
    yield
    health._scheduler = None
    health._statistics = None


def make_scheduler(running=True):
    job = MagicMock()
    job.id = "daily_roi_distribution"
    job.name = "daily_roi_distribution"
    job.next_run_time = datetime(2026, 6, 17, 0, 1, tzinfo=UTC)
    scheduler = MagicMock()
    scheduler.running = running
    scheduler.get_jobs.return_value = [job]
    return scheduler


def body(response):
    return json.loads(response.text)


async def test_unhealthy_without_scheduler():
    response = await health.health_handler(MagicMock())

    assert response.status == 503
    assert body(response)["status"] == "unhealthy"


async def test_healthy_with_job_state():
    statistics = AsyncMock(
        return_value={
            "is_locked": False,
            "locked_by": None,
            "last_run_at": datetime(2026, 6, 16, 0, 1, tzinfo=UTC),
            "last_run_status": "success",
            "consecutive_failures": 0,
        }
    )
    health.set_scheduler(make_scheduler(), statistics=statistics)

    response = await health.health_handler(MagicMock())

    assert response.status == 200
    payload = body(response)
    assert payload["jobs_count"] == 1
    job = payload["jobs"][0]
    assert job["next_run_time"] == "2026-06-17T00:01:00+00:00"
    assert job["state"]["last_run_status"] == "success"
    assert job["state"]["last_run_at"] == "2026-06-16T00:01:00+00:00"
    statistics.assert_awaited_once_with("daily_roi_distribution")


async def test_stopped_scheduler_is_unhealthy():
    health.set_scheduler(make_scheduler(running=False))

    response = await health.health_handler(MagicMock())

    assert response.status == 503
    assert body(response)["status"] == "stopped"
    assert body(response)["jobs"][0]["state"] is None


async def test_statistics_failure_is_reported():
    health.set_scheduler(
        make_scheduler(), statistics=AsyncMock(side_effect=RuntimeError("db down"))
    )

    response = await health.health_handler(MagicMock())

    assert response.status == 503
    assert body(response)["error"] == "db down"


async def test_readiness_follows_scheduler_state():
    assert (await health.readiness_handler(MagicMock())).status == 503

    health.set_scheduler(make_scheduler())

    assert (await health.readiness_handler(MagicMock())).status == 200
    assert (await health.liveness_handler(MagicMock())).status == 200
