"""
SystemSetting model.

Key/value business settings read at the start of each payout run.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import JSONType, UTCDateTime, utc_default


class SystemSetting(Base):
    """System setting - JSON value under a dotted key."""

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[Any] = mapped_column(JSONType, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_default, onupdate=utc_default
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<SystemSetting(key={self.key}, value={self.value!r})>"
