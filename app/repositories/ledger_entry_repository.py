"""
LedgerEntry repository.

Data access for ledger entries.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LedgerEntryStatus
from app.models.ledger_entry import LedgerEntry
from app.repositories.base import BaseRepository


class LedgerEntryRepository(BaseRepository[LedgerEntry]):
    """Repository for LedgerEntry entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(LedgerEntry, session)

    async def get_by_source_ref(self, source_ref: str) -> LedgerEntry | None:
        """Get entry by idempotency key."""
        return await self.get_by(source_ref=source_ref)

    async def get_latest(
        self, participant_id: int, wallet_name: str
    ) -> LedgerEntry | None:
        """
        Get newest completed entry for one sub-balance.

        Args:
            participant_id: Participant ID
            wallet_name: Sub-balance name

        Returns:
            Newest entry or None if the wallet has no history
        """
        stmt = (
            select(LedgerEntry)
            .where(
                LedgerEntry.participant_id == participant_id,
                LedgerEntry.wallet_name == wallet_name,
                LedgerEntry.status == LedgerEntryStatus.COMPLETED.value,
            )
            .order_by(LedgerEntry.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_for_participant(
        self, participant_id: int, limit: int | None = None
    ) -> list[LedgerEntry]:
        """Get entries of a participant, oldest first."""
        return await self.find_all(limit=limit, participant_id=participant_id)
