"""
BinaryPairingCycle model.

Snapshot of one daily binary pairing calculation for a participant.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import PairingCycleStatus
from app.models.types import MoneyType, UTCDateTime, utc_default


class BinaryPairingCycle(Base):
    """Binary pairing record, one per participant per cycle date."""

    __tablename__ = "binary_pairing_cycles"
    __table_args__ = (
        UniqueConstraint(
            "participant_id",
            "cycle_date",
            name="uq_binary_pairing_cycles_day",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    cycle_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Inputs
    left_volume: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    right_volume: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    carry_in_left: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    carry_in_right: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    pair_value: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_per_pair: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    # Outputs
    pairs_matched: Mapped[int] = mapped_column(Integer, nullable=False)
    gross_commission: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    cap: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    capping_applied: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    final_commission: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    carry_out_left: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    carry_out_right: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PairingCycleStatus.PROCESSED.value
    )
    commission_id: Mapped[int | None] = mapped_column(
        ForeignKey("commissions.id", ondelete="RESTRICT"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<BinaryPairingCycle(participant_id={self.participant_id}, "
            f"date={self.cycle_date}, pairs={self.pairs_matched}, "
            f"final={self.final_commission})>"
        )
