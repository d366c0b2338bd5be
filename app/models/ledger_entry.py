"""
LedgerEntry model.

Append-only record of every wallet balance mutation.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import LedgerDirection, LedgerEntryStatus
from app.models.types import MoneyType, UTCDateTime, utc_default


class LedgerEntry(Base):
    """
    Ledger entry.

    Invariant: balance_after == balance_before + signed_amount, and the
    live wallet balance equals balance_after of the newest completed entry
    for the same wallet name.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint(
            "direction IN ('credit', 'debit')", name="direction_valid"
        ),
        Index(
            "idx_ledger_participant_wallet",
            "participant_id",
            "wallet_name",
            "id",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    wallet_id: Mapped[int] = mapped_column(
        ForeignKey("wallets.id", ondelete="RESTRICT"), nullable=False
    )

    type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    wallet_name: Mapped[str] = mapped_column(String(20), nullable=False)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LedgerEntryStatus.COMPLETED.value
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Idempotency key
    source_ref: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEntry(id={self.id}, participant_id={self.participant_id}, "
            f"{self.direction} {self.amount} {self.wallet_name}, "
            f"source_ref={self.source_ref})>"
        )

    @property
    def signed_amount(self) -> Decimal:
        """Amount with sign applied (negative for debits)."""
        if self.direction == LedgerDirection.DEBIT:
            return -self.amount
        return self.amount
