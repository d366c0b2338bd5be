"""
Commission repository.

Data access for commissions and binary pairing cycles.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.binary_pairing_cycle import BinaryPairingCycle
from app.models.commission import Commission
from app.models.enums import CommissionType
from app.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[Commission]):
    """Repository for Commission entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Commission, session)

    async def get_by_key(
        self,
        source_event_id: str,
        recipient_id: int,
        commission_type: str,
        level: int,
    ) -> Commission | None:
        """
        Get commission by its uniqueness key.

        Args:
            source_event_id: Source event identifier
            recipient_id: Recipient participant ID
            commission_type: direct / level / binary
            level: Upline level (0 for binary)

        Returns:
            Commission or None
        """
        return await self.get_by(
            source_event_id=source_event_id,
            recipient_id=recipient_id,
            type=commission_type,
            level=level,
        )

    async def find_by_event(self, source_event_id: str) -> list[Commission]:
        """Get all commissions created for a source event."""
        stmt = (
            select(Commission)
            .where(Commission.source_event_id == source_event_id)
            .order_by(Commission.level, Commission.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_totals(
        self, recipient_id: int, commission_type: str, status: str
    ) -> tuple[Decimal, int]:
        """
        Sum and count commissions of one type and status for a recipient.

        Returns:
            (total amount, count)
        """
        stmt = select(
            func.coalesce(func.sum(Commission.amount), 0), func.count(Commission.id)
        ).where(
            Commission.recipient_id == recipient_id,
            Commission.type == commission_type,
            Commission.status == status,
        )
        total, count = (await self.session.execute(stmt)).one()
        return Decimal(total), count

    async def get_level_breakdown(
        self, recipient_id: int, status: str
    ) -> list[dict]:
        """Totals of level commissions per upline level, lowest level first."""
        stmt = (
            select(
                Commission.level,
                func.sum(Commission.amount).label("total"),
                func.count(Commission.id).label("count"),
            )
            .where(
                Commission.recipient_id == recipient_id,
                Commission.type == CommissionType.LEVEL.value,
                Commission.status == status,
            )
            .group_by(Commission.level)
            .order_by(Commission.level)
        )
        result = await self.session.execute(stmt)
        return [
            {"level": row.level, "total": Decimal(row.total), "count": row.count}
            for row in result.all()
        ]

    async def find_recent(
        self,
        recipient_id: int,
        commission_type: str,
        status: str,
        limit: int = 10,
    ) -> list[Commission]:
        """Latest paid-out commissions of one type, newest payment first."""
        stmt = (
            select(Commission)
            .where(
                Commission.recipient_id == recipient_id,
                Commission.type == commission_type,
                Commission.status == status,
            )
            .order_by(Commission.paid_at.desc(), Commission.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class BinaryPairingCycleRepository(BaseRepository[BinaryPairingCycle]):
    """Repository for BinaryPairingCycle entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(BinaryPairingCycle, session)

    async def get_for_day(
        self, participant_id: int, cycle_date: date
    ) -> BinaryPairingCycle | None:
        """Get pairing cycle of a participant for one day."""
        return await self.get_by(
            participant_id=participant_id, cycle_date=cycle_date
        )

    async def find_history(
        self,
        participant_id: int,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[BinaryPairingCycle], int]:
        """
        Page through pairing cycles of a participant, latest day first.

        Args:
            participant_id: Participant ID
            status: Only cycles with this status
            limit: Page size
            offset: Rows to skip

        Returns:
            (cycles on the page, total matching cycles)
        """
        conditions = [BinaryPairingCycle.participant_id == participant_id]
        if status:
            conditions.append(BinaryPairingCycle.status == status)

        total = await self.session.scalar(
            select(func.count(BinaryPairingCycle.id)).where(*conditions)
        )
        stmt = (
            select(BinaryPairingCycle)
            .where(*conditions)
            .order_by(BinaryPairingCycle.cycle_date.desc(), BinaryPairingCycle.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total or 0

    async def get_totals(self, participant_id: int, status: str) -> dict:
        """Commission, pairs and cycle count over cycles with a status."""
        stmt = select(
            func.coalesce(func.sum(BinaryPairingCycle.final_commission), 0),
            func.coalesce(func.sum(BinaryPairingCycle.pairs_matched), 0),
            func.count(BinaryPairingCycle.id),
        ).where(
            BinaryPairingCycle.participant_id == participant_id,
            BinaryPairingCycle.status == status,
        )
        total_commission, total_pairs, count = (await self.session.execute(stmt)).one()
        return {
            "total_commission": Decimal(total_commission),
            "total_pairs": int(total_pairs),
            "count": count,
        }
