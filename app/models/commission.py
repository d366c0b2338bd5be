"""
Commission model.

Direct, level and binary commissions. One record per
(source event, recipient, type, level).
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import CommissionStatus
from app.models.types import MoneyType, PercentType, UTCDateTime, utc_default


class Commission(Base):
    """Commission model - referral earnings."""

    __tablename__ = "commissions"
    __table_args__ = (
        UniqueConstraint(
            "source_event_id",
            "recipient_id",
            "type",
            "level",
            name="uq_commissions_event_recipient",
        ),
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("level >= 0 AND level <= 5", name="level_range"),
        Index("idx_commissions_recipient_type", "recipient_id", "type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    recipient_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"), nullable=False
    )
    source_participant_id: Mapped[int | None] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"), nullable=True
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False)
    # 1 for direct, 2..5 for level, 0 for binary
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    percentage: Mapped[Decimal | None] = mapped_column(PercentType, nullable=True)
    source_amount: Mapped[Decimal | None] = mapped_column(MoneyType, nullable=True)

    # "investment:<id>" or "binary:<participant_id>:<date>"
    source_event_id: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CommissionStatus.APPROVED.value
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    ledger_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id", ondelete="RESTRICT"), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Commission(id={self.id}, recipient_id={self.recipient_id}, "
            f"type={self.type}, level={self.level}, amount={self.amount}, "
            f"status={self.status})>"
        )

    @property
    def ledger_source_ref(self) -> str:
        """Deterministic ledger idempotency key for this commission."""
        return (
            f"commission:{self.source_event_id}:{self.recipient_id}:"
            f"{self.type}:{self.level}"
        )
