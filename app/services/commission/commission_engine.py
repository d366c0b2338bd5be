"""
Commission engine.

Creates direct and level commissions for a new investment and runs binary
pairing cycles. Commissions on an investment are best-effort: a failed
commission is rolled back to its savepoint and never fails the investment.
Storage outages still propagate.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MAX_UPLINE_LEVELS
from app.models.commission import Commission
from app.models.enums import (
    AuditSeverity,
    CommissionStatus,
    CommissionType,
    LedgerEntryType,
    WalletName,
)
from app.models.investment import Investment
from app.repositories.commission_repository import CommissionRepository
from app.repositories.participant_repository import ParticipantRepository
from app.services.base_service import BaseService
from app.services.commission.binary_pairing import (
    BinaryPairingProcessor,
    PairingOutcome,
)
from app.services.commission.eligibility import CommissionEligibility
from app.services.events import EventBus, PayoutEvent, PayoutEvents, event_bus
from app.services.ledger_service import LedgerService, quantize_money
from app.services.settings_service import PayoutConfig, SettingsService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    DuplicateCommission,
    EligibilityFailure,
    is_safe_to_ignore,
    must_abort_run,
)


def dispatch_volume_propagation(investment_id: int) -> None:
    """Queue binary volume propagation on the worker."""
    from jobs.tasks.volume_propagation import propagate_investment_volume

    propagate_investment_volume.send(investment_id)


@dataclass
class CommissionRunResult:
    """Result of commission processing for one investment."""

    investment_id: int
    source_event_id: str
    paid: list[Commission] = field(default_factory=list)
    rejected: list[Commission] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    duplicates: int = 0
    failed: int = 0
    events: list[PayoutEvent] = field(default_factory=list)
    volume_pending: bool = True

    @property
    def total_paid(self) -> Decimal:
        return sum((c.amount for c in self.paid), Decimal("0"))


class CommissionEngine(BaseService):
    """
    Commission engine.

    on_investment_created runs inside the caller's transaction, right after
    the investment and its debit are written. The caller commits and then
    calls after_commit to publish events and queue volume propagation.
    """

    def __init__(
        self,
        session: AsyncSession,
        events: EventBus | None = None,
        volume_dispatcher: Callable[[int], Any] | None = None,
    ) -> None:
        """
        Initialize commission engine.

        Args:
            session: Async database session
            events: Event bus for commission events
            volume_dispatcher: Called with the investment ID after commit
        """
        super().__init__(session)
        self.events = events or event_bus
        self.volume_dispatcher = volume_dispatcher or dispatch_volume_propagation
        self.participant_repo = ParticipantRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.eligibility = CommissionEligibility(session)
        self.ledger = LedgerService(session, events=self.events)
        self.pairing_processor = BinaryPairingProcessor(session, ledger=self.ledger)

    async def on_investment_created(
        self, investment: Investment, config: PayoutConfig | None = None
    ) -> CommissionRunResult:
        """
        Create direct and level commissions for an investment. Does not commit.

        Args:
            investment: Newly written investment
            config: Settings snapshot (loaded from the store if omitted)

        Returns:
            CommissionRunResult
        """
        if config is None:
            config = await SettingsService(self.session).load_config()

        source_event_id = f"investment:{investment.id}"
        result = CommissionRunResult(
            investment_id=investment.id, source_event_id=source_event_id
        )

        investor = await self.participant_repo.get_by_id(investment.participant_id)
        if investor is None:
            self.logger.error(
                f"Investor {investment.participant_id} of investment "
                f"{investment.id} not found, commissions skipped"
            )
            result.skipped.append("investor_missing")
            result.volume_pending = False
            return result

        if not config.mlm_enabled:
            self.logger.info(
                f"Commissions disabled, investment {investment.id} skipped"
            )
            result.skipped.append("mlm_disabled")
            return result

        await self._process_direct(investment, investor.sponsor_id, config, result)

        for entry in investor.upline_chain or []:
            level = int(entry["level"])
            if level < 2 or level > MAX_UPLINE_LEVELS:
                continue
            percentage = config.level_percentage(level)
            if percentage <= 0:
                continue
            await self._process_level(
                investment, int(entry["participant_id"]), level, percentage,
                config, result,
            )

        self.logger.info(
            f"Commissions for investment {investment.id}: "
            f"{len(result.paid)} paid ({result.total_paid}), "
            f"{len(result.rejected)} rejected, {result.duplicates} duplicate, "
            f"{result.failed} failed"
        )
        return result

    async def after_commit(self, result: CommissionRunResult) -> None:
        """
        Publish commission events and queue binary volume propagation.

        Args:
            result: Result returned by on_investment_created
        """
        await self.events.emit_all(result.events)
        if result.volume_pending:
            self.volume_dispatcher(result.investment_id)

    async def calculate_binary_pairing(
        self,
        participant_id: int,
        cycle_date: date,
        pair_value: Decimal,
        commission_per_pair: Decimal,
        daily_cap: Decimal,
    ) -> PairingOutcome:
        """Run one binary pairing cycle for a participant. Does not commit."""
        return await self.pairing_processor.calculate_binary_pairing(
            participant_id, cycle_date, pair_value, commission_per_pair, daily_cap
        )

    async def _process_direct(
        self,
        investment: Investment,
        sponsor_id: int | None,
        config: PayoutConfig,
        result: CommissionRunResult,
    ) -> None:
        sponsor = (
            await self.participant_repo.get_by_id(sponsor_id) if sponsor_id else None
        )
        eligibility = self.eligibility.check_direct_eligibility(sponsor)
        if not eligibility.is_eligible:
            self.logger.info(
                f"Direct commission for investment {investment.id} skipped: "
                f"{eligibility.reason}"
            )
            result.skipped.append(f"direct:{eligibility.reason}")
            return

        await self._pay(
            investment,
            recipient_id=sponsor.id,
            commission_type=CommissionType.DIRECT,
            level=1,
            percentage=config.direct_percentage,
            wallet_name=WalletName.REFERRAL,
            tx_type=LedgerEntryType.REFERRAL_INCOME,
            result=result,
        )

    async def _process_level(
        self,
        investment: Investment,
        recipient_id: int,
        level: int,
        percentage: Decimal,
        config: PayoutConfig,
        result: CommissionRunResult,
    ) -> None:
        try:
            await self.eligibility.require_upline_eligibility(
                recipient_id, config.level_requires_active_investment
            )
        except EligibilityFailure as e:
            await self._reject(
                investment, recipient_id, level, percentage, e.reason, result
            )
            return

        await self._pay(
            investment,
            recipient_id=recipient_id,
            commission_type=CommissionType.LEVEL,
            level=level,
            percentage=percentage,
            wallet_name=WalletName.LEVEL,
            tx_type=LedgerEntryType.LEVEL_INCOME,
            result=result,
        )

    async def _find_existing(self, data: dict[str, Any]) -> Commission | None:
        return await self.commission_repo.get_by_key(
            data["source_event_id"], data["recipient_id"], data["type"], data["level"]
        )

    async def _create_commission(self, **data: Any) -> Commission:
        """
        Insert a commission, raising DuplicateCommission if it exists.

        Only a unique key collision becomes DuplicateCommission; any other
        constraint violation propagates.
        """
        existing = await self._find_existing(data)
        if existing is not None:
            raise DuplicateCommission(
                f"Commission {existing.id} already exists for "
                f"{data['source_event_id']} -> {data['recipient_id']}"
            )
        commission = Commission(**data)
        try:
            async with self.session.begin_nested():
                self.session.add(commission)
                await self.session.flush()
        except IntegrityError as e:
            existing = await self._find_existing(data)
            if existing is None:
                raise
            raise DuplicateCommission(
                f"Concurrent commission {existing.id} for "
                f"{data['source_event_id']} -> {data['recipient_id']}"
            ) from e
        return commission

    async def _pay(
        self,
        investment: Investment,
        recipient_id: int,
        commission_type: CommissionType,
        level: int,
        percentage: Decimal,
        wallet_name: WalletName,
        tx_type: LedgerEntryType,
        result: CommissionRunResult,
    ) -> None:
        amount = quantize_money(investment.amount * percentage / 100)
        if amount <= 0:
            result.skipped.append(f"{commission_type.value}:{level}:zero_amount")
            return

        try:
            async with self.session.begin_nested():
                commission = await self._create_commission(
                    recipient_id=recipient_id,
                    source_participant_id=investment.participant_id,
                    type=commission_type.value,
                    level=level,
                    amount=amount,
                    percentage=percentage,
                    source_amount=investment.amount,
                    source_event_id=result.source_event_id,
                    status=CommissionStatus.APPROVED.value,
                )
                ledger_result = await self.ledger.credit(
                    recipient_id,
                    wallet_name,
                    amount,
                    reason=(
                        f"{commission_type.value.capitalize()} commission "
                        f"level {level} from investment {investment.id}"
                    ),
                    source_ref=commission.ledger_source_ref,
                    tx_type=tx_type,
                )
                commission.ledger_entry_id = ledger_result.entry.id
                commission.status = CommissionStatus.PAID.value
                commission.paid_at = utc_now()
                await self.session.flush()
        except Exception as e:
            if is_safe_to_ignore(e):
                self.logger.debug(f"Duplicate commission ignored: {e}")
                result.duplicates += 1
                return
            if must_abort_run(e):
                raise
            self.logger.exception(
                f"Commission {commission_type.value} level {level} for "
                f"investment {investment.id} to participant {recipient_id} "
                f"failed: {e}"
            )
            result.failed += 1
            return

        result.paid.append(commission)
        result.events.append(
            PayoutEvent(
                name=PayoutEvents.COMMISSION_PAID,
                entity="commission",
                entity_id=str(commission.id),
                payload={
                    "recipient_id": recipient_id,
                    "type": commission_type.value,
                    "level": level,
                    "amount": str(amount),
                    "source_event_id": result.source_event_id,
                },
            )
        )

    async def _reject(
        self,
        investment: Investment,
        recipient_id: int,
        level: int,
        percentage: Decimal,
        reason: str | None,
        result: CommissionRunResult,
    ) -> None:
        amount = quantize_money(investment.amount * percentage / 100)
        try:
            async with self.session.begin_nested():
                commission = await self._create_commission(
                    recipient_id=recipient_id,
                    source_participant_id=investment.participant_id,
                    type=CommissionType.LEVEL.value,
                    level=level,
                    amount=amount,
                    percentage=percentage,
                    source_amount=investment.amount,
                    source_event_id=result.source_event_id,
                    status=CommissionStatus.REJECTED.value,
                    rejection_reason=reason,
                )
        except DuplicateCommission as e:
            self.logger.debug(f"Duplicate rejected commission ignored: {e}")
            result.duplicates += 1
            return

        self.logger.info(
            f"Level {level} commission for investment {investment.id} to "
            f"participant {recipient_id} rejected: {reason}"
        )
        result.rejected.append(commission)
        result.events.append(
            PayoutEvent(
                name=PayoutEvents.COMMISSION_REJECTED,
                entity="commission",
                entity_id=str(commission.id),
                payload={
                    "recipient_id": recipient_id,
                    "level": level,
                    "amount": str(amount),
                    "reason": reason,
                    "source_event_id": result.source_event_id,
                },
                severity=AuditSeverity.WARNING,
            )
        )
