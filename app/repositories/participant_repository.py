"""
Participant repository.

Data access for participants, the binary placement tree, and the binary
and sponsor team counters. Counter mutations are single atomic UPDATE statements.
"""

from decimal import Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MAX_UPLINE_LEVELS
from app.models.enums import BinaryPosition, ParticipantStatus
from app.models.participant import Participant
from app.repositories.base import BaseRepository


class ParticipantRepository(BaseRepository[Participant]):
    """Repository for Participant entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Participant, session)

    async def get_by_code(self, code: str) -> Participant | None:
        """
        Get participant by referral code.

        Args:
            code: Public referral code

        Returns:
            Participant or None
        """
        return await self.get_by(code=code)

    async def get_children(self, parent_id: int) -> dict[str, int]:
        """
        Get binary children of a node.

        Args:
            parent_id: Binary parent ID

        Returns:
            Mapping of occupied position to child ID
        """
        stmt = select(Participant.id, Participant.binary_position).where(
            Participant.binary_parent_id == parent_id
        )
        result = await self.session.execute(stmt)
        return {row.binary_position: row.id for row in result.all()}

    async def get_lineage_links(
        self, participant_ids: list[int]
    ) -> dict[int, tuple[int | None, str]]:
        """
        Get binary parent and position for several participants at once.

        Args:
            participant_ids: Participant IDs

        Returns:
            Mapping of ID to (binary_parent_id, binary_position)
        """
        if not participant_ids:
            return {}
        stmt = select(
            Participant.id,
            Participant.binary_parent_id,
            Participant.binary_position,
        ).where(Participant.id.in_(participant_ids))
        result = await self.session.execute(stmt)
        return {
            row.id: (row.binary_parent_id, row.binary_position)
            for row in result.all()
        }

    async def increment_child_count(
        self, parent_id: int, position: BinaryPosition | str
    ) -> None:
        """
        Increment left_count or right_count of a binary parent.

        Args:
            parent_id: Binary parent ID
            position: Side the new child took
        """
        column = "left_count" if position == BinaryPosition.LEFT else "right_count"
        stmt = (
            update(Participant)
            .where(Participant.id == parent_id)
            .values({column: getattr(Participant, column) + 1})
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def increment_team_counts(self, upline_chain: list[dict]) -> int:
        """
        Count a new participant in the team of every upline member.

        Args:
            upline_chain: Upline chain of the new participant

        Returns:
            Number of upline rows updated
        """
        updated = 0
        for entry in upline_chain:
            level = int(entry["level"])
            if not 1 <= level <= MAX_UPLINE_LEVELS:
                continue
            column = f"team_level_{level}"
            updated += await self.update_where(
                [Participant.id == int(entry["participant_id"])],
                **{
                    column: getattr(Participant, column) + 1,
                    "team_total": Participant.team_total + 1,
                },
            )
        return updated

    async def find_team_at_level(
        self, participant_id: int, level: int
    ) -> list[Participant]:
        """
        Get sponsor team members exactly level steps below a participant.

        Walks down by sponsor_id, which never changes after join, so the
        result matches the frozen upline chains of the members.

        Args:
            participant_id: Team owner
            level: 1 for direct referrals

        Returns:
            Members, newest first
        """
        sponsor_ids = [participant_id]
        for _ in range(level - 1):
            result = await self.session.execute(
                select(Participant.id).where(Participant.sponsor_id.in_(sponsor_ids))
            )
            sponsor_ids = list(result.scalars().all())
            if not sponsor_ids:
                return []

        stmt = (
            select(Participant)
            .where(Participant.sponsor_id.in_(sponsor_ids))
            .order_by(Participant.created_at.desc(), Participant.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add_business(
        self, participant_id: int, side: BinaryPosition | str, amount: Decimal
    ) -> tuple[int | None, str] | None:
        """
        Atomically add volume to one leg and return the node's own link.

        Args:
            participant_id: Node receiving the volume
            side: left or right leg
            amount: Volume to add

        Returns:
            (binary_parent_id, binary_position) of the node, or None if the
            node does not exist
        """
        column = (
            "left_business" if side == BinaryPosition.LEFT else "right_business"
        )
        stmt = (
            update(Participant)
            .where(Participant.id == participant_id)
            .values({column: getattr(Participant, column) + amount})
            .returning(Participant.binary_parent_id, Participant.binary_position)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row.binary_parent_id, row.binary_position

    async def find_pairing_candidate_ids(self) -> list[int]:
        """
        Find active participants with volume on either leg.

        Returns:
            Participant IDs ordered by ID
        """
        stmt = (
            select(Participant.id)
            .where(
                Participant.status == ParticipantStatus.ACTIVE.value,
                or_(
                    Participant.left_business > 0,
                    Participant.right_business > 0,
                    Participant.carry_left > 0,
                    Participant.carry_right > 0,
                ),
            )
            .order_by(Participant.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def apply_pairing(
        self,
        participant: Participant,
        carry_out_left: Decimal,
        carry_out_right: Decimal,
        pairs: int,
    ) -> bool:
        """
        Commit a pairing result against the snapshot it was computed from.

        Current business is reduced by the snapshot values, so volume that
        arrived after the snapshot stays on the leg. Carries are swapped only
        if they still hold the snapshot values.

        Args:
            participant: Snapshot the pairing was computed from
            carry_out_left: New left carry
            carry_out_right: New right carry
            pairs: Pairs matched

        Returns:
            True if the row was updated, False if the carries changed
        """
        stmt = (
            update(Participant)
            .where(
                Participant.id == participant.id,
                Participant.carry_left == participant.carry_left,
                Participant.carry_right == participant.carry_right,
            )
            .values(
                left_business=Participant.left_business - participant.left_business,
                right_business=(
                    Participant.right_business - participant.right_business
                ),
                carry_left=carry_out_left,
                carry_right=carry_out_right,
                total_pairs=Participant.total_pairs + pairs,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) == 1
