"""
Binary volume propagation module.

Pushes investment volume up the binary tree. Each ancestor receives the
amount on the leg the walk arrived from.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import BinaryPosition
from app.repositories.participant_repository import ParticipantRepository
from app.utils.exceptions import TreeIntegrityError


# Upper bound on tree depth walked by a single propagation
MAX_TREE_DEPTH = 10_000


class BinaryVolumePropagator:
    """Propagates business volume to binary ancestors."""

    def __init__(
        self, session: AsyncSession, max_depth: int = MAX_TREE_DEPTH
    ) -> None:
        """Initialize volume propagator."""
        self.session = session
        self.max_depth = max_depth
        self.participant_repo = ParticipantRepository(session)

    async def propagate_volume_upline(
        self, origin_id: int, amount: Decimal
    ) -> int:
        """
        Add amount to every binary ancestor of origin.

        Each step is one atomic increment that also returns the node's own
        parent and position, so the walk never reads stale tree state.

        Args:
            origin_id: Participant whose investment produced the volume
            amount: Volume to add

        Returns:
            Number of ancestors credited

        Raises:
            TreeIntegrityError: The walk loops or exceeds max_depth
        """
        links = await self.participant_repo.get_lineage_links([origin_id])
        if origin_id not in links:
            logger.warning(f"Volume origin {origin_id} not found, nothing propagated")
            return 0

        current_id, side = links[origin_id]
        visited = {origin_id}
        credited = 0

        while current_id is not None and side != BinaryPosition.NONE:
            if current_id in visited:
                raise TreeIntegrityError(
                    f"Binary lineage of {origin_id} loops at node {current_id}"
                )
            if credited >= self.max_depth:
                raise TreeIntegrityError(
                    f"Binary lineage of {origin_id} deeper than {self.max_depth}"
                )
            visited.add(current_id)

            link = await self.participant_repo.add_business(current_id, side, amount)
            if link is None:
                logger.warning(
                    f"Binary ancestor {current_id} of {origin_id} missing, "
                    f"propagation stopped after {credited} nodes"
                )
                break

            credited += 1
            current_id, side = link

        logger.info(
            f"Propagated {amount} volume from participant {origin_id} "
            f"to {credited} ancestors"
        )
        return credited
