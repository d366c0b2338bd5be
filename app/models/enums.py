"""
Model enumerations.

String enums shared by models and services.
"""

from enum import StrEnum


class ParticipantStatus(StrEnum):
    """Participant account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class BinaryPosition(StrEnum):
    """Side of the binary parent a participant occupies."""

    LEFT = "left"
    RIGHT = "right"
    NONE = "none"  # root of the placement tree


class WalletName(StrEnum):
    """Wallet sub-balances."""

    MAIN = "main"
    ROI = "roi"
    REFERRAL = "referral"
    LEVEL = "level"
    BINARY = "binary"
    HOLD = "hold"

    @property
    def column(self) -> str:
        """Column name of the balance on the wallets table."""
        return f"{self.value}_balance"


# Wallets whose credits count towards lifetime earnings
EARNING_WALLETS = frozenset(
    {WalletName.ROI, WalletName.REFERRAL, WalletName.LEVEL, WalletName.BINARY}
)


class LedgerDirection(StrEnum):
    """Ledger entry direction."""

    CREDIT = "credit"
    DEBIT = "debit"


class LedgerEntryType(StrEnum):
    """Ledger entry type."""

    INVESTMENT_DEBIT = "investment_debit"
    ROI_CREDIT = "roi_credit"
    REFERRAL_INCOME = "referral_income"
    LEVEL_INCOME = "level_income"
    BINARY_INCOME = "binary_income"
    ADMIN_CREDIT = "admin_credit"
    ADMIN_DEBIT = "admin_debit"
    DEPOSIT = "deposit"


class LedgerEntryStatus(StrEnum):
    """Ledger entry status."""

    COMPLETED = "completed"
    REVERSED = "reversed"


class InvestmentStatus(StrEnum):
    """Investment lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"  # ROI cap reached
    MATURED = "matured"  # maturity date passed
    CANCELLED = "cancelled"


class PayoutFrequency(StrEnum):
    """ROI payout frequency."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CommissionType(StrEnum):
    """Commission type."""

    DIRECT = "direct"
    LEVEL = "level"
    BINARY = "binary"


class CommissionStatus(StrEnum):
    """Commission status."""

    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class PairingCycleStatus(StrEnum):
    """Binary pairing cycle status."""

    PROCESSED = "processed"
    FAILED = "failed"


class JobStatus(StrEnum):
    """Scheduled job state."""

    IDLE = "idle"
    RUNNING = "running"


class JobRunStatus(StrEnum):
    """Outcome of a single job run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class JobTrigger(StrEnum):
    """What started a job run."""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


class AuditSeverity(StrEnum):
    """Audit entry severity."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
