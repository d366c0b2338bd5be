"""
Participant model.

Represents a member of the referral network with its sponsor chain and
binary placement tree position.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import BinaryPosition, ParticipantStatus
from app.models.types import JSONType, MoneyType, UTCDateTime, utc_default


class Participant(Base):
    """
    Participant entity.

    Attributes:
        id: Primary key
        code: Public referral code
        status: active / inactive / blocked
        sponsor_id: Direct sponsor (level 1 of the upline chain)
        upline_chain: Cached sponsor chain, frozen at join
            ([{"participant_id": int, "level": int}, ...], levels 1..5)
        binary_parent_id: Parent in the binary placement tree
        binary_position: Side occupied under the binary parent
        left_count / right_count: Direct children placed on each side
        left_business / right_business: Uncommitted leg volume
        carry_left / carry_right: Volume carried from earlier pairings
        total_pairs: Lifetime matched pairs
        team_level_1 .. team_level_5: Sponsor team size at each upline level
            (team_level_1 is the number of direct referrals)
        team_total: Sponsor team size over all tracked levels
    """

    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint(
            "binary_parent_id",
            "binary_position",
            name="uq_participants_binary_slot",
        ),
        CheckConstraint(
            "binary_position IN ('left', 'right', 'none')",
            name="binary_position_valid",
        ),
        CheckConstraint(
            "(binary_parent_id IS NULL) = (binary_position = 'none')",
            name="binary_parent_matches_position",
        ),
        CheckConstraint("left_business >= 0", name="left_business_non_negative"),
        CheckConstraint("right_business >= 0", name="right_business_non_negative"),
        CheckConstraint("carry_left >= 0", name="carry_left_non_negative"),
        CheckConstraint("carry_right >= 0", name="carry_right_non_negative"),
        Index("idx_participants_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ParticipantStatus.ACTIVE.value
    )

    # Sponsor (upline) chain
    sponsor_id: Mapped[int | None] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    upline_chain: Mapped[list[dict]] = mapped_column(
        JSONType, nullable=False, default=list
    )

    # Binary placement tree
    binary_parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("participants.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    binary_position: Mapped[str] = mapped_column(
        String(10), nullable=False, default=BinaryPosition.NONE.value
    )

    # Binary team counters
    left_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    right_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    left_business: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    right_business: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    carry_left: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    carry_right: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False, default=Decimal("0")
    )
    total_pairs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Sponsor team counters, maintained at registration
    team_level_1: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    team_level_2: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    team_level_3: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    team_level_4: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    team_level_5: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    team_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default, onupdate=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Participant(id={self.id}, code={self.code}, "
            f"sponsor_id={self.sponsor_id}, "
            f"binary={self.binary_parent_id}:{self.binary_position})>"
        )

    @property
    def is_active(self) -> bool:
        """Check if participant account is active."""
        return self.status == ParticipantStatus.ACTIVE

    @property
    def upline_ids(self) -> list[int]:
        """Upline participant IDs ordered from level 1 upwards."""
        return [entry["participant_id"] for entry in self.upline_chain or []]

    @property
    def team_counts(self) -> dict[int, int]:
        """Sponsor team size keyed by upline level."""
        return {level: getattr(self, f"team_level_{level}") for level in range(1, 6)}
