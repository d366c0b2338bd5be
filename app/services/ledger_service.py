"""
Ledger service.

The only writer of wallet balances. Every balance change is an atomic
increment paired with exactly one ledger entry in the caller's transaction.
"""

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MONEY_QUANT
from app.models.enums import (
    EARNING_WALLETS,
    AuditSeverity,
    LedgerDirection,
    LedgerEntryStatus,
    LedgerEntryType,
    WalletName,
)
from app.models.ledger_entry import LedgerEntry
from app.models.wallet import Wallet
from app.repositories.ledger_entry_repository import LedgerEntryRepository
from app.repositories.wallet_repository import WalletRepository
from app.services.base_service import BaseService
from app.services.events import EventBus, PayoutEvent, PayoutEvents, event_bus
from app.utils.exceptions import InsufficientBalance, LedgerInconsistency


def quantize_money(value: Decimal) -> Decimal:
    """Round down to ledger precision."""
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_DOWN)


@dataclass
class LedgerResult:
    """Result of a credit or debit."""

    entry: LedgerEntry
    duplicate: bool = False

    @property
    def balance_after(self) -> Decimal:
        return self.entry.balance_after


@dataclass
class WalletReconciliation:
    """Live balances compared against the ledger."""

    participant_id: int
    is_consistent: bool
    # wallet name -> (live balance, last ledger balance_after)
    mismatches: dict[str, tuple[Decimal, Decimal]] = field(default_factory=dict)


class LedgerService(BaseService):
    """
    Ledger service.

    credit/debit never commit; they run inside the caller's unit of work
    so the balance change and its entry stand or fall together.
    """

    def __init__(
        self, session: AsyncSession, events: EventBus | None = None
    ) -> None:
        """
        Initialize ledger service.

        Args:
            session: Async database session
            events: Event bus for rejection events
        """
        super().__init__(session)
        self.wallet_repo = WalletRepository(session)
        self.entry_repo = LedgerEntryRepository(session)
        self.events = events or event_bus

    async def create_wallet(self, participant_id: int) -> Wallet:
        """
        Create the wallet of a new participant.

        Args:
            participant_id: Participant ID

        Returns:
            Created wallet with zero balances
        """
        return await self.wallet_repo.create(participant_id=participant_id)

    async def get_balance(
        self, participant_id: int, wallet_name: WalletName | str
    ) -> Decimal:
        """
        Read a live sub-balance.

        Args:
            participant_id: Participant ID
            wallet_name: Sub-balance name

        Returns:
            Current balance (0 if the participant has no wallet)
        """
        column = getattr(Wallet, WalletName(wallet_name).column)
        stmt = select(column).where(Wallet.participant_id == participant_id)
        result = await self.session.execute(stmt)
        balance = result.scalar_one_or_none()
        return quantize_money(balance) if balance is not None else Decimal("0")

    async def credit(
        self,
        participant_id: int,
        wallet_name: WalletName | str,
        amount: Decimal,
        reason: str,
        source_ref: str,
        tx_type: LedgerEntryType | str,
    ) -> LedgerResult:
        """
        Credit a sub-balance.

        Args:
            participant_id: Wallet owner
            wallet_name: Sub-balance to credit
            amount: Positive amount
            reason: Human readable reason
            source_ref: Idempotency key
            tx_type: Ledger entry type

        Returns:
            LedgerResult (duplicate=True if source_ref was already applied)

        Raises:
            LedgerInconsistency: Arithmetic mismatch or conflicting source_ref
        """
        return await self._apply(
            LedgerDirection.CREDIT,
            participant_id,
            WalletName(wallet_name),
            amount,
            reason,
            source_ref,
            tx_type,
        )

    async def debit(
        self,
        participant_id: int,
        wallet_name: WalletName | str,
        amount: Decimal,
        reason: str,
        source_ref: str,
        tx_type: LedgerEntryType | str,
    ) -> LedgerResult:
        """
        Debit a sub-balance.

        Raises:
            InsufficientBalance: Balance would go below zero
            LedgerInconsistency: Arithmetic mismatch or conflicting source_ref
        """
        return await self._apply(
            LedgerDirection.DEBIT,
            participant_id,
            WalletName(wallet_name),
            amount,
            reason,
            source_ref,
            tx_type,
        )

    async def _apply(
        self,
        direction: LedgerDirection,
        participant_id: int,
        wallet_name: WalletName,
        amount: Decimal,
        reason: str,
        source_ref: str,
        tx_type: LedgerEntryType | str,
    ) -> LedgerResult:
        amount = quantize_money(amount)
        if amount <= 0:
            raise ValueError(f"Ledger amount must be positive, got {amount}")

        existing = await self.entry_repo.get_by_source_ref(source_ref)
        if existing is not None:
            return self._check_duplicate(
                existing, direction, participant_id, wallet_name, amount
            )

        wallet = await self.wallet_repo.get_by_participant(
            participant_id, for_update=True
        )
        if wallet is None:
            raise LedgerInconsistency(
                f"Participant {participant_id} has no wallet"
            )

        before = quantize_money(wallet.balance_of(wallet_name))
        delta = amount if direction == LedgerDirection.CREDIT else -amount
        after = await self.wallet_repo.apply_delta(
            wallet.id,
            wallet_name,
            delta,
            add_to_earned=(
                direction == LedgerDirection.CREDIT
                and wallet_name in EARNING_WALLETS
            ),
        )

        if after is None and direction == LedgerDirection.CREDIT:
            raise LedgerInconsistency(f"Wallet {wallet.id} vanished during credit")
        if after is None:
            self.logger.warning(
                f"Debit rejected for participant {participant_id}: "
                f"{amount} from {wallet_name} (available {before})",
                extra={"source_ref": source_ref},
            )
            await self.events.emit(
                PayoutEvent(
                    name=PayoutEvents.LEDGER_REJECTED,
                    entity="wallet",
                    entity_id=str(participant_id),
                    payload={
                        "wallet": wallet_name.value,
                        "amount": str(amount),
                        "available": str(before),
                        "source_ref": source_ref,
                    },
                    severity=AuditSeverity.WARNING,
                )
            )
            raise InsufficientBalance(participant_id, wallet_name, amount, before)

        after = quantize_money(after)
        if after != before + delta:
            self.logger.error(
                f"Ledger mismatch for participant {participant_id} "
                f"{wallet_name}: before={before} delta={delta} after={after}",
                extra={"source_ref": source_ref},
            )
            raise LedgerInconsistency(
                f"Balance mismatch on {wallet_name} for participant "
                f"{participant_id}: {before} + {delta} != {after}"
            )

        entry = LedgerEntry(
            participant_id=participant_id,
            wallet_id=wallet.id,
            type=str(tx_type),
            wallet_name=wallet_name.value,
            direction=direction.value,
            amount=amount,
            balance_before=before,
            balance_after=after,
            status=LedgerEntryStatus.COMPLETED.value,
            reason=reason,
            source_ref=source_ref,
        )
        self.session.add(entry)
        await self.session.flush()

        self.logger.info(
            f"Ledger {direction.value} {amount} to {wallet_name.value} "
            f"of participant {participant_id} ({before} -> {after})",
            extra={"source_ref": source_ref, "entry_id": entry.id},
        )
        return LedgerResult(entry=entry)

    def _check_duplicate(
        self,
        existing: LedgerEntry,
        direction: LedgerDirection,
        participant_id: int,
        wallet_name: WalletName,
        amount: Decimal,
    ) -> LedgerResult:
        if (
            existing.participant_id != participant_id
            or existing.wallet_name != wallet_name.value
            or existing.direction != direction.value
            or quantize_money(existing.amount) != amount
        ):
            self.logger.error(
                f"Conflicting reuse of source_ref {existing.source_ref}",
                extra={"entry_id": existing.id},
            )
            raise LedgerInconsistency(
                f"source_ref {existing.source_ref} already used by entry "
                f"{existing.id} with different parameters"
            )

        self.logger.debug(
            f"Ledger entry {existing.id} already applied for "
            f"{existing.source_ref}"
        )
        return LedgerResult(entry=existing, duplicate=True)

    async def verify_wallet(self, participant_id: int) -> WalletReconciliation:
        """
        Compare live balances with the newest ledger entry per sub-balance.

        Args:
            participant_id: Participant ID

        Returns:
            Reconciliation report
        """
        wallet = await self.wallet_repo.get_by_participant(
            participant_id, for_update=True
        )
        if wallet is None:
            raise LedgerInconsistency(
                f"Participant {participant_id} has no wallet"
            )

        mismatches: dict[str, tuple[Decimal, Decimal]] = {}
        for wallet_name in WalletName:
            live = quantize_money(wallet.balance_of(wallet_name))
            latest = await self.entry_repo.get_latest(
                participant_id, wallet_name.value
            )
            expected = (
                quantize_money(latest.balance_after) if latest else Decimal("0")
            )
            if live != expected:
                mismatches[wallet_name.value] = (live, expected)

        if mismatches:
            self.logger.error(
                f"Wallet of participant {participant_id} diverges from ledger: "
                f"{mismatches}"
            )

        return WalletReconciliation(
            participant_id=participant_id,
            is_consistent=not mismatches,
            mismatches=mismatches,
        )
