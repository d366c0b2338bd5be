"""
Binary placement module.

Finds the slot for a new participant in the binary tree using spillover:
the sponsor's own empty side first, otherwise the shallowest empty slot in
the sponsor's subtree, scanning left before right.
"""

from collections import deque
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.enums import BinaryPosition
from app.repositories.participant_repository import ParticipantRepository
from app.utils.exceptions import TreeIntegrityError


@dataclass(frozen=True)
class BinaryPlacement:
    """Free slot in the binary tree."""

    parent_id: int
    position: BinaryPosition


class BinaryPlacementFinder:
    """Breadth-first spillover search."""

    def __init__(
        self, session: AsyncSession, max_iterations: int | None = None
    ) -> None:
        """
        Initialize placement finder.

        Args:
            session: Async database session
            max_iterations: Node visit ceiling (defaults to settings)
        """
        self.session = session
        self.max_iterations = max_iterations or settings.placement_max_iterations
        self.participant_repo = ParticipantRepository(session)

    async def find_binary_placement(self, sponsor_id: int) -> BinaryPlacement:
        """
        Find where a participant sponsored by sponsor_id is placed.

        Args:
            sponsor_id: Sponsor participant ID

        Returns:
            Parent and side of the free slot

        Raises:
            TreeIntegrityError: Iteration ceiling hit or subtree loops
        """
        queue: deque[int] = deque([sponsor_id])
        visited: set[int] = set()
        iterations = 0

        while queue:
            iterations += 1
            if iterations > self.max_iterations:
                logger.error(
                    f"Placement search under sponsor {sponsor_id} exceeded "
                    f"{self.max_iterations} iterations"
                )
                raise TreeIntegrityError(
                    f"No binary slot found under sponsor {sponsor_id} within "
                    f"{self.max_iterations} iterations"
                )

            node_id = queue.popleft()
            if node_id in visited:
                raise TreeIntegrityError(
                    f"Binary subtree of sponsor {sponsor_id} revisits node {node_id}"
                )
            visited.add(node_id)

            children = await self.participant_repo.get_children(node_id)
            for position in (BinaryPosition.LEFT, BinaryPosition.RIGHT):
                if position.value not in children:
                    logger.debug(
                        f"Placement under sponsor {sponsor_id}: "
                        f"{position.value} of {node_id} "
                        f"after {iterations} iterations"
                    )
                    return BinaryPlacement(parent_id=node_id, position=position)

            queue.append(children[BinaryPosition.LEFT.value])
            queue.append(children[BinaryPosition.RIGHT.value])

        raise TreeIntegrityError(
            f"Binary subtree of sponsor {sponsor_id} has no free slot"
        )
