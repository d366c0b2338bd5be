"""
Daily binary pairing module.

Runs a pairing cycle for every active participant with volume on either
leg. Each participant is paired in its own transaction.
"""

from datetime import datetime
from decimal import Decimal

from app.repositories.participant_repository import ParticipantRepository
from app.services.commission.commission_engine import CommissionEngine
from app.services.distribution.batch import BatchJobHandler
from app.services.settings_service import PayoutConfig
from app.utils.datetime_utils import ensure_utc


class BinaryPairingDistributor(BatchJobHandler):
    """Daily binary pairing job."""

    item_name = "participant"

    def is_enabled(self, config: PayoutConfig) -> bool:
        return config.binary_enabled

    async def list_item_ids(self, now: datetime) -> list[int]:
        """Active participants with non-zero business or carry."""
        async with self.session_maker() as session:
            return await ParticipantRepository(session).find_pairing_candidate_ids()

    async def process_item(
        self, item_id: int, config: PayoutConfig, now: datetime
    ) -> Decimal | None:
        """
        Pair one participant for the day of now.

        Args:
            item_id: Participant ID
            config: Settings snapshot
            now: Run time

        Returns:
            Commission paid, or None if nothing was paired
        """
        async with self.session_maker() as session:
            async with session.begin():
                engine = CommissionEngine(session, events=self.events)
                outcome = await engine.calculate_binary_pairing(
                    item_id,
                    ensure_utc(now).date(),
                    config.pair_value,
                    config.commission_per_pair,
                    config.daily_cap,
                )

        await self.events.emit_all(outcome.events)

        if outcome.already_processed or not outcome.paired:
            return None
        return outcome.final_commission
