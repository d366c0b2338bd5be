"""
Volume propagation task.

Adds the amount of a new investment to the left/right business of every
binary ancestor of the investor. Dispatched by CommissionEngine after the
investment's commissions are committed.
"""

import dramatiq
from loguru import logger

import jobs.broker  # noqa: F401  (registers the Redis broker)
from app.services.tree_placement_service import TreePlacementService
from app.utils.exceptions import TreeIntegrityError
from jobs.async_runner import run_async, task_session_maker


async def propagate_investment_volume_async(
    investment_id: int, database_url: str | None = None
) -> int:
    """
    Propagate the volume of one investment in a single transaction.

    Args:
        investment_id: Investment ID
        database_url: Override of settings.database_url

    Returns:
        Number of ancestors credited (0 if already propagated)
    """
    async with task_session_maker(database_url) as session_maker:
        async with session_maker() as session:
            async with session.begin():
                return await TreePlacementService(
                    session
                ).propagate_investment_volume(investment_id)


@dramatiq.actor(max_retries=5, time_limit=60_000, throws=(TreeIntegrityError,))
def propagate_investment_volume(investment_id: int) -> None:
    """
    Propagate investment volume up the binary tree.

    Transient errors are retried; the volume_propagated flag makes a
    re-delivery a no-op once committed. A broken tree is not retried.
    """
    credited = run_async(propagate_investment_volume_async(investment_id))
    logger.info(
        f"Volume of investment {investment_id} propagated to {credited} ancestors"
    )
