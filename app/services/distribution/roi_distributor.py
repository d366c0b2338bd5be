"""
Daily ROI distribution module.

Pays the daily return of every due investment into the participant's ROI
wallet. The distribution log entry for the payout date is the idempotency
key: a second run on the same day skips the investment.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import (
    InvestmentStatus,
    LedgerEntryType,
    WalletName,
)
from app.repositories.investment_repository import InvestmentRepository
from app.services.distribution.batch import BatchJobHandler
from app.services.ledger_service import LedgerService, quantize_money
from app.services.settings_service import PayoutConfig
from app.utils.datetime_utils import ensure_utc, next_payout_time


class RoiDistributor(BatchJobHandler):
    """Daily ROI job."""

    item_name = "investment"

    def is_enabled(self, config: PayoutConfig) -> bool:
        return config.roi_enabled

    async def list_item_ids(self, now: datetime) -> list[int]:
        """Active investments with next_payout_at <= now."""
        async with self.session_maker() as session:
            return await InvestmentRepository(session).find_due_ids(now)

    async def process_item(
        self, item_id: int, config: PayoutConfig, now: datetime
    ) -> Decimal | None:
        """
        Pay one investment for the day of now.

        Args:
            item_id: Investment ID
            config: Settings snapshot
            now: Run time

        Returns:
            Amount paid, or None if skipped
        """
        async with self.session_maker() as session:
            async with session.begin():
                return await self.distribute(session, item_id, now)

    async def distribute(
        self, session: AsyncSession, investment_id: int, now: datetime
    ) -> Decimal | None:
        """
        Pay one investment inside the given transaction.

        Args:
            session: Session with an open transaction
            investment_id: Investment ID
            now: Run time

        Returns:
            Amount paid, or None if skipped
        """
        repo = InvestmentRepository(session)
        ledger = LedgerService(session, events=self.events)
        payout_date = ensure_utc(now).date()

        investment = await repo.get_by_id(investment_id, for_update=True)
        if investment is None or investment.status != InvestmentStatus.ACTIVE:
            self.logger.debug(f"Investment {investment_id} not active, skipped")
            return None

        if await repo.get_distribution(investment_id, payout_date) is not None:
            self.logger.debug(
                f"Investment {investment_id} already paid for {payout_date}"
            )
            return None

        if investment.is_cap_reached:
            investment.status = InvestmentStatus.COMPLETED.value
            investment.completed_at = now
            investment.next_payout_at = None
            self.logger.info(
                f"Investment {investment_id} already at cap "
                f"{investment.total_cap}, marked completed"
            )
            return None

        payout = quantize_money(
            min(investment.amount * investment.daily_rate, investment.remaining_cap)
        )
        if payout <= 0:
            investment.next_payout_at = next_payout_time(
                now, investment.payout_frequency
            )
            self.logger.warning(
                f"Investment {investment_id} has zero daily payout, skipped"
            )
            return None

        ledger_result = await ledger.credit(
            investment.participant_id,
            WalletName.ROI,
            payout,
            reason=f"Daily ROI for investment {investment_id} on {payout_date}",
            source_ref=f"roi:{investment_id}:{payout_date.isoformat()}",
            tx_type=LedgerEntryType.ROI_CREDIT,
        )
        await repo.create_distribution(
            investment_id=investment_id,
            payout_date=payout_date,
            amount=payout,
            ledger_entry_id=ledger_result.entry.id,
        )

        investment.total_paid = investment.total_paid + payout
        investment.days_paid = investment.days_paid + 1
        investment.next_payout_at = next_payout_time(now, investment.payout_frequency)

        if investment.total_paid >= investment.total_cap:
            investment.status = InvestmentStatus.COMPLETED.value
            investment.completed_at = now
            investment.next_payout_at = None
            self.logger.info(f"Investment {investment_id} reached ROI cap")
        elif investment.matures_at is not None and now >= investment.matures_at:
            investment.status = InvestmentStatus.MATURED.value
            investment.completed_at = now
            investment.next_payout_at = None
            self.logger.info(f"Investment {investment_id} matured")

        await session.flush()
        self.logger.info(
            f"ROI {payout} paid for investment {investment_id} "
            f"({investment.total_paid}/{investment.total_cap})"
        )
        return payout
