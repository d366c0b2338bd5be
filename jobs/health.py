"""
Health check server for the payout scheduler.

Exposes the APScheduler state together with the run state of each payout
job as recorded in scheduled_jobs.
"""

import asyncio
from collections.abc import Awaitable, Callable

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

StatisticsProvider = Callable[[str], Awaitable[dict | None]]

_scheduler: AsyncIOScheduler | None = None
_statistics: StatisticsProvider | None = None


def set_scheduler(
    scheduler: AsyncIOScheduler, statistics: StatisticsProvider | None = None
) -> None:
    """
    Register the scheduler (and optionally a job statistics provider).

    Args:
        scheduler: AsyncIOScheduler instance to monitor
        statistics: Coroutine returning statistics of a job by name
    """
    global _scheduler, _statistics
    _scheduler = scheduler
    _statistics = statistics
    logger.info("Scheduler registered for health checks")


def _describe_trigger_jobs(scheduler: AsyncIOScheduler) -> list[dict]:
    return [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": (
                job.next_run_time.isoformat() if job.next_run_time else None
            ),
        }
        for job in scheduler.get_jobs()
    ]


async def _payout_job_state(job_id: str) -> dict | None:
    if _statistics is None:
        return None
    stats = await _statistics(job_id)
    if stats is None:
        return None
    last_run_at = stats.get("last_run_at")
    return {
        "is_locked": stats["is_locked"],
        "locked_by": stats["locked_by"],
        "last_run_at": last_run_at.isoformat() if last_run_at else None,
        "last_run_status": stats["last_run_status"],
        "consecutive_failures": stats["consecutive_failures"],
    }


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Unhealthy when the scheduler is not running or job state cannot be read.
    """
    if _scheduler is None:
        return web.json_response(
            {"status": "unhealthy", "error": "Scheduler not initialized"},
            status=503,
        )

    try:
        jobs = _describe_trigger_jobs(_scheduler)
        for job in jobs:
            job["state"] = await _payout_job_state(job["id"])

        is_running = _scheduler.running
        return web.json_response(
            {
                "status": "healthy" if is_running else "stopped",
                "scheduler_running": is_running,
                "jobs_count": len(jobs),
                "jobs": jobs,
            },
            status=200 if is_running else 503,
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return web.json_response(
            {"status": "unhealthy", "error": str(e)},
            status=503,
        )


async def readiness_handler(request: web.Request) -> web.Response:
    """Ready once the scheduler is running."""
    if _scheduler is None or not _scheduler.running:
        return web.json_response({"status": "not_ready", "ready": False}, status=503)
    return web.json_response({"status": "ready", "ready": True})


async def liveness_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive", "alive": True})


def create_health_app() -> web.Application:
    """Build the aiohttp application with the health routes."""
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(host: str, port: int) -> web.AppRunner:
    """
    Start the health check server.

    Args:
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on http://{host}:{port}/health")
    return runner


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """
    Stop the health check server.

    Args:
        runner: AppRunner returned by start_health_server
        timeout: Maximum seconds to wait for cleanup
    """
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("Health check server stopped")
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
