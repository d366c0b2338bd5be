"""
Async runner for dramatiq tasks.

Dramatiq actors are synchronous; payout services are async. Each worker
thread keeps one event loop and opens a NullPool engine per task so no
connection outlives the loop it was created on.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.config.settings import settings

T = TypeVar("T")

_thread_local = threading.local()


def get_event_loop() -> asyncio.AbstractEventLoop:
    """Get or create the event loop of the current thread."""
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.loop = loop
        logger.debug(
            f"Created new event loop for thread {threading.current_thread().name}"
        )
    return loop


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine in the thread's event loop.

    Args:
        coro: Coroutine to run

    Returns:
        Result of the coroutine
    """
    loop = get_event_loop()
    try:
        return loop.run_until_complete(coro)
    except Exception as e:
        logger.exception(f"Error running async coroutine: {e}")
        raise


@asynccontextmanager
async def task_session_maker(
    database_url: str | None = None,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Session factory bound to a task-local engine.

    Usage:
        async with task_session_maker() as session_maker:
            await DistributionScheduler(session_maker).run_job(ROI_JOB)

    Args:
        database_url: Override of settings.database_url

    Yields:
        async_sessionmaker disposed together with its engine on exit
    """
    engine = create_async_engine(
        database_url or settings.database_url,
        echo=False,
        poolclass=NullPool,
    )
    try:
        yield async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    finally:
        await engine.dispose()
