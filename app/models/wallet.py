"""
Wallet model.

One wallet per participant holding the sub-balances that LedgerService
mutates.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import WalletName
from app.models.types import MoneyType, UTCDateTime, utc_default


class Wallet(Base):
    """Wallet model - participant balances."""

    __tablename__ = "wallets"
    __table_args__ = tuple(
        CheckConstraint(
            f"{name.column} >= 0", name=f"{name.column}_non_negative"
        )
        for name in WalletName
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
    )

    main_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    roi_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    referral_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    level_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    binary_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    hold_balance: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )

    # Lifetime credits to earning wallets
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    # Bumped by every balance mutation
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default, onupdate=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Wallet(id={self.id}, participant_id={self.participant_id})>"

    def balance_of(self, wallet_name: WalletName | str) -> Decimal:
        """Get sub-balance by wallet name."""
        return getattr(self, WalletName(wallet_name).column)
