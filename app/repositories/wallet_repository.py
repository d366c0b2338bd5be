"""
Wallet repository.

Data access for wallets. Balance changes go through apply_delta only.
"""

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WalletName
from app.models.wallet import Wallet
from app.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    """Repository for Wallet entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Wallet, session)

    async def get_by_participant(
        self, participant_id: int, for_update: bool = False
    ) -> Wallet | None:
        """
        Get wallet of a participant.

        Args:
            participant_id: Participant ID
            for_update: Lock the row and reload it from the database

        Returns:
            Wallet or None
        """
        stmt = select(Wallet).where(Wallet.participant_id == participant_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True
            )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def apply_delta(
        self,
        wallet_id: int,
        wallet_name: WalletName,
        delta: Decimal,
        add_to_earned: bool = False,
    ) -> Decimal | None:
        """
        Atomically add delta to one sub-balance.

        A negative delta only applies if the balance stays non-negative.

        Args:
            wallet_id: Wallet ID
            wallet_name: Sub-balance to change
            delta: Signed amount
            add_to_earned: Also add delta to total_earned

        Returns:
            New balance, or None if the guard rejected the change
        """
        column = getattr(Wallet, wallet_name.column)
        values = {
            wallet_name.column: column + delta,
            "version": Wallet.version + 1,
        }
        if add_to_earned:
            values["total_earned"] = Wallet.total_earned + delta

        stmt = update(Wallet).where(Wallet.id == wallet_id)
        if delta < 0:
            stmt = stmt.where(column + delta >= 0)
        stmt = (
            stmt.values(values)
            .returning(column)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
