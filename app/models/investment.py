"""
Investment models.

Investment principal with its ROI schedule, and the per-day distribution
log that makes ROI payouts idempotent.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import InvestmentStatus, PayoutFrequency
from app.models.types import (
    MoneyType,
    PercentType,
    RateType,
    UTCDateTime,
    utc_default,
)


class Investment(Base):
    """
    Investment entity.

    Attributes:
        amount: Principal
        daily_rate: ROI per payout as a fraction of principal
        roi_cap_percent: Cap on total ROI as percent of principal
        total_cap: Cap amount (amount * roi_cap_percent / 100)
        total_paid: ROI paid so far, never exceeds total_cap
        next_payout_at: Earliest time the next payout is due
        matures_at: Optional maturity date
        volume_propagated: Binary volume already pushed up the tree
    """

    __tablename__ = "investments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("daily_rate >= 0", name="daily_rate_non_negative"),
        CheckConstraint("total_paid >= 0", name="total_paid_non_negative"),
        CheckConstraint("total_paid <= total_cap", name="total_paid_within_cap"),
        Index("idx_investments_due", "status", "next_payout_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    roi_cap_percent: Mapped[Decimal] = mapped_column(
        PercentType, nullable=False, default=Decimal("200")
    )
    total_cap: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total_paid: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    days_paid: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    payout_frequency: Mapped[str] = mapped_column(
        String(10), nullable=False, default=PayoutFrequency.DAILY.value
    )
    next_payout_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    matures_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InvestmentStatus.ACTIVE.value
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    volume_propagated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default, onupdate=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Investment(id={self.id}, participant_id={self.participant_id}, "
            f"amount={self.amount}, paid={self.total_paid}/{self.total_cap}, "
            f"status={self.status})>"
        )

    @property
    def remaining_cap(self) -> Decimal:
        """ROI still payable before the cap is reached."""
        return max(self.total_cap - self.total_paid, Decimal("0"))

    @property
    def is_cap_reached(self) -> bool:
        """Check if ROI cap is reached."""
        return self.total_paid >= self.total_cap


class InvestmentDistribution(Base):
    """One ROI payout of an investment; at most one per payout date."""

    __tablename__ = "investment_distributions"
    __table_args__ = (
        UniqueConstraint(
            "investment_id",
            "payout_date",
            name="uq_investment_distributions_day",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    investment_id: Mapped[int] = mapped_column(
        ForeignKey("investments.id", ondelete="RESTRICT"), nullable=False
    )
    payout_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    ledger_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id", ondelete="RESTRICT"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<InvestmentDistribution(investment_id={self.investment_id}, "
            f"date={self.payout_date}, amount={self.amount})>"
        )
