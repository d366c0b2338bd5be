"""
Commission income reports.

Read-only views over binary pairing cycles and level commissions of one
participant.
"""

import math

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import CommissionStatus, CommissionType, PairingCycleStatus
from app.repositories.commission_repository import (
    BinaryPairingCycleRepository,
    CommissionRepository,
)
from app.services.base_service import BaseService


# Recent level commissions included in the income summary
RECENT_COMMISSIONS_LIMIT = 10


class IncomeReportService(BaseService):
    """Builds binary history pages and level income summaries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize income report service."""
        super().__init__(session)
        self.commission_repo = CommissionRepository(session)
        self.cycle_repo = BinaryPairingCycleRepository(session)

    async def get_binary_history(
        self,
        participant_id: int,
        page: int = 1,
        limit: int = 20,
        status: PairingCycleStatus | str | None = None,
    ) -> dict:
        """
        Get one page of binary pairing cycles with lifetime totals.

        Args:
            participant_id: Participant ID
            page: Page number, starting at 1
            limit: Cycles per page
            status: Only cycles with this status

        Returns:
            Dict with cycles, pagination and stats over processed cycles

        Raises:
            ValueError: page or limit below 1
        """
        if page < 1 or limit < 1:
            raise ValueError(f"Invalid page {page} or limit {limit}")

        cycles, total = await self.cycle_repo.find_history(
            participant_id,
            status=str(status) if status else None,
            limit=limit,
            offset=(page - 1) * limit,
        )
        stats = await self.cycle_repo.get_totals(
            participant_id, PairingCycleStatus.PROCESSED.value
        )
        return {
            "cycles": cycles,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
            },
            "stats": stats,
        }

    async def get_level_income_summary(self, participant_id: int) -> dict:
        """
        Summarize level commission income of a participant.

        Approved commissions are counted as pending; paid ones as earned.
        """
        level = CommissionType.LEVEL.value
        total_earned, total_count = await self.commission_repo.get_totals(
            participant_id, level, CommissionStatus.PAID.value
        )
        pending_amount, pending_count = await self.commission_repo.get_totals(
            participant_id, level, CommissionStatus.APPROVED.value
        )
        return {
            "total_earned": total_earned,
            "total_count": total_count,
            "pending_amount": pending_amount,
            "pending_count": pending_count,
            "level_wise": await self.commission_repo.get_level_breakdown(
                participant_id, CommissionStatus.PAID.value
            ),
            "recent_commissions": await self.commission_repo.find_recent(
                participant_id,
                level,
                CommissionStatus.PAID.value,
                limit=RECENT_COMMISSIONS_LIMIT,
            ),
        }
