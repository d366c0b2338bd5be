"""
Upline chain management module.

Builds the sponsor chain cached on a participant at join time.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MAX_UPLINE_LEVELS
from app.models.participant import Participant
from app.repositories.participant_repository import ParticipantRepository
from app.utils.exceptions import TreeIntegrityError


class UplineChainManager:
    """Manages sponsor (upline) chain operations."""

    def __init__(
        self, session: AsyncSession, depth: int = MAX_UPLINE_LEVELS
    ) -> None:
        """Initialize chain manager."""
        self.session = session
        self.depth = min(depth, MAX_UPLINE_LEVELS)
        self.participant_repo = ParticipantRepository(session)

    async def build_upline_chain(self, sponsor: Participant) -> list[dict]:
        """
        Build the upline chain of a participant joining under sponsor.

        Walks sponsor -> sponsor.sponsor_id -> ... until the depth limit or
        the root is reached.

        Args:
            sponsor: Direct sponsor of the new participant

        Returns:
            [{"participant_id": id, "level": n}, ...] with levels 1..depth

        Raises:
            TreeIntegrityError: The sponsor chain loops back on itself
        """
        chain = [{"participant_id": sponsor.id, "level": 1}]
        seen = {sponsor.id}
        current = sponsor

        while len(chain) < self.depth and current.sponsor_id is not None:
            if current.sponsor_id in seen:
                raise TreeIntegrityError(
                    f"Sponsor cycle detected at participant {current.sponsor_id}"
                )

            upline = await self.participant_repo.get_by_id(current.sponsor_id)
            if upline is None:
                logger.warning(
                    f"Sponsor {current.sponsor_id} of participant {current.id} "
                    f"not found, upline chain truncated at level {len(chain)}"
                )
                break

            seen.add(upline.id)
            chain.append({"participant_id": upline.id, "level": len(chain) + 1})
            current = upline

        logger.debug(
            "Upline chain built",
            extra={"sponsor_id": sponsor.id, "chain_length": len(chain)},
        )
        return chain
