"""
Base service class.

Payout services work inside the caller's unit of work: they flush but never
commit, so one investment or one batch item stays a single transaction.
"""

import functools
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


R = TypeVar("R")


class BaseService:
    """Session holder with a logger bound to the concrete service name."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Session with (or about to open) the caller's transaction
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def flush(self) -> None:
        """Send pending changes without ending the caller's transaction."""
        await self.session.flush()


def _subject(args: tuple) -> str:
    # First positional argument names what the call works on
    # (job name, participant code, investment id).
    return repr(args[0]) if args else ""


def log_operation(
    func: Callable[..., Awaitable[R]],
) -> Callable[..., Awaitable[R]]:
    """
    Log start, end and duration of an async service method.

    The wrapped object must expose a bound ``logger``.
    """

    @functools.wraps(func)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> R:
        operation = f"{func.__name__}({_subject(args)})"
        started = time.monotonic()
        self.logger.debug(f"{operation} started")

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            self.logger.error(
                f"{operation} raised {type(e).__name__} after {elapsed_ms}ms: {e}",
                extra={"operation": func.__name__, "duration_ms": elapsed_ms},
            )
            raise

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self.logger.debug(
            f"{operation} done in {elapsed_ms}ms",
            extra={"operation": func.__name__, "duration_ms": elapsed_ms},
        )
        return result

    return wrapper
