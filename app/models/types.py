"""
Standard type definitions for database models.

Provides consistent types for monetary, percentage, timestamp and JSON
fields across all models.
"""

from datetime import UTC, datetime

from sqlalchemy import DECIMAL, JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

# Standard money type for amounts, balances, commissions
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Standard percentage type for commission and cap percentages
# Precision: 7 digits total, 4 after decimal point
# Range: 0.0000 to 999.9999
PercentType = DECIMAL(7, 4)

# Daily rate stored as a fraction (0.015 = 1.5% per day)
RateType = DECIMAL(10, 8)

# JSONB on PostgreSQL, generic JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp.

    Values are normalized to UTC on the way in and always come back
    timezone-aware, including on backends that store naive timestamps.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        value = value.astimezone(UTC)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def utc_default() -> datetime:
    """Column default for creation timestamps."""
    return datetime.now(UTC)
