"""
Tree placement service.

Places new participants into the sponsor chain and the binary tree, and
owns binary volume propagation for investments.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.enums import BinaryPosition, ParticipantStatus
from app.models.participant import Participant
from app.repositories.investment_repository import InvestmentRepository
from app.repositories.participant_repository import ParticipantRepository
from app.services.base_service import BaseService, log_operation
from app.services.ledger_service import LedgerService
from app.services.referral import (
    BinaryPlacement,
    BinaryPlacementFinder,
    BinaryVolumePropagator,
    UplineChainManager,
)


# Attempts when a concurrent registration takes the same binary slot
PLACEMENT_RETRIES = 3


@dataclass
class TreePlacement:
    """Placement of a participant about to join."""

    upline_chain: list[dict]
    binary_placement: BinaryPlacement | None
    sponsor_id: int | None = None

    @property
    def is_root(self) -> bool:
        return self.sponsor_id is None


class TreePlacementService(BaseService):
    """
    Tree placement service.

    Facade over the upline chain manager, the spillover placement search
    and the binary volume propagator.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize tree placement service.

        Args:
            session: Async database session
        """
        super().__init__(session)
        self.participant_repo = ParticipantRepository(session)
        self.investment_repo = InvestmentRepository(session)
        self.chain_manager = UplineChainManager(session, settings.upline_depth)
        self.placement_finder = BinaryPlacementFinder(session)
        self.volume_propagator = BinaryVolumePropagator(session)
        self.ledger = LedgerService(session)

    async def build_upline_chain(self, sponsor: Participant) -> list[dict]:
        """Build the upline chain for a participant joining under sponsor."""
        return await self.chain_manager.build_upline_chain(sponsor)

    async def find_binary_placement(self, sponsor: Participant) -> BinaryPlacement:
        """Find the binary slot for a participant joining under sponsor."""
        return await self.placement_finder.find_binary_placement(sponsor.id)

    async def build_tree_on_registration(
        self, sponsor_code: str | None
    ) -> TreePlacement:
        """
        Compute upline chain and binary slot for a joining participant.

        Args:
            sponsor_code: Referral code of the sponsor, None for a root

        Returns:
            TreePlacement

        Raises:
            ValueError: Unknown sponsor code
            TreeIntegrityError: Corrupt sponsor chain or binary subtree
        """
        if not sponsor_code:
            return TreePlacement(upline_chain=[], binary_placement=None)

        sponsor = await self.participant_repo.get_by_code(sponsor_code)
        if sponsor is None:
            raise ValueError(f"Unknown sponsor code: {sponsor_code}")

        upline_chain = await self.build_upline_chain(sponsor)
        placement = await self.find_binary_placement(sponsor)
        return TreePlacement(
            upline_chain=upline_chain,
            binary_placement=placement,
            sponsor_id=sponsor.id,
        )

    @log_operation
    async def register_participant(
        self, code: str, sponsor_code: str | None = None
    ) -> Participant:
        """
        Create a participant with its tree placement and wallet.

        Runs in a savepoint; a lost race for the binary slot is retried with
        a fresh search. Does not commit.

        Args:
            code: Referral code of the new participant
            sponsor_code: Referral code of the sponsor

        Returns:
            Created participant

        Raises:
            ValueError: Duplicate code or unknown sponsor
            TreeIntegrityError: Corrupt tree
        """
        if await self.participant_repo.exists(code=code):
            raise ValueError(f"Participant code already taken: {code}")

        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.session.begin_nested():
                    return await self._place_participant(code, sponsor_code)
            except IntegrityError as e:
                if attempt >= PLACEMENT_RETRIES:
                    raise
                self.logger.warning(
                    f"Binary slot taken concurrently for {code}, "
                    f"retrying placement ({attempt}/{PLACEMENT_RETRIES}): {e}"
                )

    async def _place_participant(
        self, code: str, sponsor_code: str | None
    ) -> Participant:
        tree = await self.build_tree_on_registration(sponsor_code)
        placement = tree.binary_placement

        participant = await self.participant_repo.create(
            code=code,
            status=ParticipantStatus.ACTIVE.value,
            sponsor_id=tree.sponsor_id,
            upline_chain=tree.upline_chain,
            binary_parent_id=placement.parent_id if placement else None,
            binary_position=(
                placement.position.value if placement else BinaryPosition.NONE.value
            ),
        )
        if placement:
            await self.participant_repo.increment_child_count(
                placement.parent_id, placement.position
            )
        await self.participant_repo.increment_team_counts(tree.upline_chain)
        await self.ledger.create_wallet(participant.id)

        self.logger.info(
            f"Participant {participant.id} ({code}) registered",
            extra={
                "sponsor_id": tree.sponsor_id,
                "binary_parent_id": participant.binary_parent_id,
                "binary_position": participant.binary_position,
                "upline_length": len(tree.upline_chain),
            },
        )
        return participant

    async def propagate_volume_upline(
        self, origin_id: int, amount: Decimal
    ) -> int:
        """Add amount to every binary ancestor of origin (no idempotency)."""
        return await self.volume_propagator.propagate_volume_upline(
            origin_id, amount
        )

    async def propagate_investment_volume(self, investment_id: int) -> int:
        """
        Propagate the volume of an investment at most once.

        The claim flag and the counter increments share the caller's
        transaction, so a rollback releases the claim. Does not commit.

        Args:
            investment_id: Investment ID

        Returns:
            Number of ancestors credited (0 if already propagated)
        """
        investment = await self.investment_repo.get_by_id(investment_id)
        if investment is None:
            self.logger.warning(f"Investment {investment_id} not found")
            return 0

        if not await self.investment_repo.mark_volume_propagated(investment_id):
            self.logger.debug(
                f"Volume of investment {investment_id} already propagated"
            )
            return 0

        return await self.propagate_volume_upline(
            investment.participant_id, investment.amount
        )

    async def get_binary_summary(self, participant_id: int) -> dict | None:
        """
        Get binary team counters of a participant.

        Returns:
            Summary dict or None if participant does not exist
        """
        participant = await self.participant_repo.get_by_id(
            participant_id, for_update=False
        )
        if participant is None:
            return None
        await self.session.refresh(participant)

        return {
            "participant_id": participant.id,
            "left_count": participant.left_count,
            "right_count": participant.right_count,
            "left_business": participant.left_business,
            "right_business": participant.right_business,
            "carry_left": participant.carry_left,
            "carry_right": participant.carry_right,
            "total_left": participant.left_business + participant.carry_left,
            "total_right": participant.right_business + participant.carry_right,
            "total_pairs": participant.total_pairs,
            "team_by_level": participant.team_counts,
            "team_total": participant.team_total,
        }

    async def get_team_by_level(
        self, participant_id: int, level: int = 1
    ) -> list[Participant]:
        """
        Get sponsor team members at one upline level below a participant.

        Args:
            participant_id: Team owner
            level: 1 (direct referrals) up to the upline depth

        Returns:
            Members, newest first

        Raises:
            ValueError: Level outside the tracked depth
        """
        if not 1 <= level <= settings.upline_depth:
            raise ValueError(
                f"Team level must be between 1 and {settings.upline_depth}, got {level}"
            )
        return await self.participant_repo.find_team_at_level(participant_id, level)
