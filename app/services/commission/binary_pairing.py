"""
Binary pairing module.

Pure pairing arithmetic and the per-participant pairing processor that
commits a pairing cycle, its commission and its ledger credit atomically.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_FLOOR, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.binary_pairing_cycle import BinaryPairingCycle
from app.models.commission import Commission
from app.models.enums import (
    CommissionStatus,
    CommissionType,
    LedgerEntryType,
    PairingCycleStatus,
    WalletName,
)
from app.repositories.commission_repository import (
    BinaryPairingCycleRepository,
    CommissionRepository,
)
from app.repositories.participant_repository import ParticipantRepository
from app.services.base_service import BaseService
from app.services.events import PayoutEvent, PayoutEvents
from app.services.ledger_service import LedgerService, quantize_money
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import ConcurrentUpdateError


ZERO = Decimal("0")


@dataclass(frozen=True)
class PairingResult:
    """Outcome of the pairing arithmetic for one participant."""

    total_left: Decimal
    total_right: Decimal
    pairs: int
    used_volume: Decimal
    gross_commission: Decimal
    final_commission: Decimal
    capping_applied: bool
    carry_out_left: Decimal
    carry_out_right: Decimal


def match_pairs(
    left_business: Decimal,
    right_business: Decimal,
    carry_left: Decimal,
    carry_right: Decimal,
    pair_value: Decimal,
    commission_per_pair: Decimal,
    daily_cap: Decimal,
) -> PairingResult:
    """
    Match left and right volume into pairs.

    The stronger leg carries its unused volume forward, the weaker leg's
    carry becomes 0. Equal legs carry nothing.

    Args:
        left_business: Current left leg volume
        right_business: Current right leg volume
        carry_left: Left carry from earlier cycles
        carry_right: Right carry from earlier cycles
        pair_value: Volume per leg for one pair
        commission_per_pair: Commission for one pair
        daily_cap: Commission ceiling for the cycle

    Returns:
        PairingResult (pairs == 0 means nothing to commit)
    """
    if pair_value <= 0:
        raise ValueError(f"pair_value must be positive, got {pair_value}")

    total_left = left_business + carry_left
    total_right = right_business + carry_right

    pairs = int(
        (min(total_left, total_right) / pair_value).to_integral_value(
            rounding=ROUND_FLOOR
        )
    )
    if pairs <= 0:
        return PairingResult(
            total_left=total_left,
            total_right=total_right,
            pairs=0,
            used_volume=ZERO,
            gross_commission=ZERO,
            final_commission=ZERO,
            capping_applied=False,
            carry_out_left=carry_left,
            carry_out_right=carry_right,
        )

    gross = pairs * commission_per_pair
    final = min(gross, daily_cap)
    used = pairs * pair_value

    if total_left > total_right:
        carry_out_left, carry_out_right = total_left - used, ZERO
    elif total_right > total_left:
        carry_out_left, carry_out_right = ZERO, total_right - used
    else:
        carry_out_left = carry_out_right = ZERO

    return PairingResult(
        total_left=total_left,
        total_right=total_right,
        pairs=pairs,
        used_volume=used,
        gross_commission=gross,
        final_commission=final,
        capping_applied=final < gross,
        carry_out_left=carry_out_left,
        carry_out_right=carry_out_right,
    )


@dataclass
class PairingOutcome:
    """Result of processing one participant's pairing cycle."""

    participant_id: int
    cycle_date: date
    pairs: int = 0
    final_commission: Decimal = ZERO
    cycle: BinaryPairingCycle | None = None
    commission: Commission | None = None
    already_processed: bool = False
    events: list[PayoutEvent] = field(default_factory=list)

    @property
    def paired(self) -> bool:
        return self.pairs > 0


class BinaryPairingProcessor(BaseService):
    """Commits binary pairing cycles."""

    def __init__(
        self, session: AsyncSession, ledger: LedgerService | None = None
    ) -> None:
        """Initialize pairing processor."""
        super().__init__(session)
        self.participant_repo = ParticipantRepository(session)
        self.cycle_repo = BinaryPairingCycleRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.ledger = ledger or LedgerService(session)

    async def calculate_binary_pairing(
        self,
        participant_id: int,
        cycle_date: date,
        pair_value: Decimal,
        commission_per_pair: Decimal,
        daily_cap: Decimal,
    ) -> PairingOutcome:
        """
        Run one pairing cycle for a participant. Does not commit.

        Args:
            participant_id: Participant ID
            cycle_date: Cycle date (one cycle per participant per date)
            pair_value: Volume per leg for one pair
            commission_per_pair: Commission for one pair
            daily_cap: Commission ceiling for the cycle

        Returns:
            PairingOutcome

        Raises:
            ConcurrentUpdateError: Carries changed after the snapshot
        """
        outcome = PairingOutcome(participant_id=participant_id, cycle_date=cycle_date)

        existing = await self.cycle_repo.get_for_day(participant_id, cycle_date)
        if existing is not None:
            outcome.already_processed = True
            outcome.cycle = existing
            outcome.pairs = existing.pairs_matched
            outcome.final_commission = existing.final_commission
            return outcome

        # Row lock gives one consistent snapshot of all counters
        participant = await self.participant_repo.get_by_id(
            participant_id, for_update=True
        )
        if participant is None:
            self.logger.warning(f"Participant {participant_id} not found for pairing")
            return outcome

        result = match_pairs(
            left_business=participant.left_business,
            right_business=participant.right_business,
            carry_left=participant.carry_left,
            carry_right=participant.carry_right,
            pair_value=pair_value,
            commission_per_pair=commission_per_pair,
            daily_cap=daily_cap,
        )
        if result.pairs == 0:
            self.logger.debug(
                f"No pairs for participant {participant_id} "
                f"(L={result.total_left}, R={result.total_right})"
            )
            return outcome

        applied = await self.participant_repo.apply_pairing(
            participant,
            carry_out_left=result.carry_out_left,
            carry_out_right=result.carry_out_right,
            pairs=result.pairs,
        )
        if not applied:
            raise ConcurrentUpdateError(
                f"Binary carries of participant {participant_id} changed "
                f"during pairing"
            )

        final = quantize_money(result.final_commission)
        source_event_id = f"binary:{participant_id}:{cycle_date.isoformat()}"
        commission = Commission(
            recipient_id=participant_id,
            source_participant_id=participant_id,
            type=CommissionType.BINARY.value,
            level=0,
            amount=final,
            percentage=(commission_per_pair / pair_value * 100).quantize(
                Decimal("0.0001")
            ),
            source_amount=result.used_volume,
            source_event_id=source_event_id,
            status=CommissionStatus.APPROVED.value,
        )
        self.session.add(commission)
        await self.session.flush()

        if final > 0:
            ledger_result = await self.ledger.credit(
                participant_id,
                WalletName.BINARY,
                final,
                reason=f"Binary income: {result.pairs} pairs on {cycle_date}",
                source_ref=commission.ledger_source_ref,
                tx_type=LedgerEntryType.BINARY_INCOME,
            )
            commission.ledger_entry_id = ledger_result.entry.id
            commission.status = CommissionStatus.PAID.value
            commission.paid_at = utc_now()

        cycle = BinaryPairingCycle(
            participant_id=participant_id,
            cycle_date=cycle_date,
            left_volume=participant.left_business,
            right_volume=participant.right_business,
            carry_in_left=participant.carry_left,
            carry_in_right=participant.carry_right,
            pair_value=pair_value,
            commission_per_pair=commission_per_pair,
            pairs_matched=result.pairs,
            gross_commission=result.gross_commission,
            cap=daily_cap,
            capping_applied=result.capping_applied,
            final_commission=final,
            carry_out_left=result.carry_out_left,
            carry_out_right=result.carry_out_right,
            status=PairingCycleStatus.PROCESSED.value,
            commission_id=commission.id,
        )
        self.session.add(cycle)
        await self.session.flush()

        outcome.pairs = result.pairs
        outcome.final_commission = final
        outcome.cycle = cycle
        outcome.commission = commission
        outcome.events.append(
            PayoutEvent(
                name=PayoutEvents.BINARY_PAIRED,
                entity="participant",
                entity_id=str(participant_id),
                payload={
                    "cycle_date": cycle_date.isoformat(),
                    "pairs": result.pairs,
                    "gross": str(result.gross_commission),
                    "final": str(final),
                    "capping_applied": result.capping_applied,
                },
            )
        )
        if final > 0:
            outcome.events.append(
                PayoutEvent(
                    name=PayoutEvents.COMMISSION_PAID,
                    entity="commission",
                    entity_id=str(commission.id),
                    payload={
                        "recipient_id": participant_id,
                        "type": CommissionType.BINARY.value,
                        "amount": str(final),
                    },
                )
            )

        self.logger.info(
            f"Binary pairing for participant {participant_id} on {cycle_date}: "
            f"{result.pairs} pairs, gross={result.gross_commission}, "
            f"final={final}, carry L={result.carry_out_left} "
            f"R={result.carry_out_right}"
        )
        return outcome
