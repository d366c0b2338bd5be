"""
Investment repository.

Data access for investments and their ROI distribution log.
"""

from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import InvestmentStatus
from app.models.investment import Investment, InvestmentDistribution
from app.repositories.base import BaseRepository


class InvestmentRepository(BaseRepository[Investment]):
    """Repository for Investment entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Investment, session)

    async def find_due_ids(
        self, now: datetime, limit: int | None = None
    ) -> list[int]:
        """
        Find active investments whose next payout is due.

        Args:
            now: Current time
            limit: Max number of results

        Returns:
            Investment IDs ordered by due time
        """
        stmt = (
            select(Investment.id)
            .where(
                Investment.status == InvestmentStatus.ACTIVE.value,
                Investment.next_payout_at.is_not(None),
                Investment.next_payout_at <= now,
            )
            .order_by(Investment.next_payout_at, Investment.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def has_active_investment(self, participant_id: int) -> bool:
        """Check if participant holds at least one active investment."""
        return await self.exists(
            participant_id=participant_id,
            status=InvestmentStatus.ACTIVE.value,
        )

    async def mark_volume_propagated(self, investment_id: int) -> bool:
        """
        Claim binary volume propagation for an investment.

        Returns:
            True if this caller flipped the flag, False if already claimed
        """
        changed = await self.update_where(
            [
                Investment.id == investment_id,
                Investment.volume_propagated.is_(False),
            ],
            volume_propagated=True,
        )
        return changed == 1

    async def get_distribution(
        self, investment_id: int, payout_date: date
    ) -> InvestmentDistribution | None:
        """Get ROI distribution of an investment for one day."""
        stmt = select(InvestmentDistribution).where(
            InvestmentDistribution.investment_id == investment_id,
            InvestmentDistribution.payout_date == payout_date,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_distribution(self, **data) -> InvestmentDistribution:
        """Append a distribution record."""
        distribution = InvestmentDistribution(**data)
        self.session.add(distribution)
        await self.session.flush()
        return distribution

    async def list_distributions(
        self, investment_id: int
    ) -> list[InvestmentDistribution]:
        """Get distributions of an investment, oldest first."""
        stmt = (
            select(InvestmentDistribution)
            .where(InvestmentDistribution.investment_id == investment_id)
            .order_by(InvestmentDistribution.payout_date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
