"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.audit_log import AuditLog
from app.models.base import Base
from app.models.binary_pairing_cycle import BinaryPairingCycle
from app.models.commission import Commission
from app.models.enums import (
    AuditSeverity,
    BinaryPosition,
    CommissionStatus,
    CommissionType,
    InvestmentStatus,
    JobRunStatus,
    JobStatus,
    JobTrigger,
    LedgerDirection,
    LedgerEntryStatus,
    LedgerEntryType,
    PairingCycleStatus,
    ParticipantStatus,
    PayoutFrequency,
    WalletName,
)
from app.models.investment import Investment, InvestmentDistribution
from app.models.ledger_entry import LedgerEntry
from app.models.participant import Participant
from app.models.scheduled_job import ScheduledJob
from app.models.system_setting import SystemSetting
from app.models.wallet import Wallet


__all__ = [
    "Base",
    # Network
    "Participant",
    # Money
    "Wallet",
    "LedgerEntry",
    "Investment",
    "InvestmentDistribution",
    "Commission",
    "BinaryPairingCycle",
    # Operations
    "ScheduledJob",
    "SystemSetting",
    "AuditLog",
    # Enums
    "AuditSeverity",
    "BinaryPosition",
    "CommissionStatus",
    "CommissionType",
    "InvestmentStatus",
    "JobRunStatus",
    "JobStatus",
    "JobTrigger",
    "LedgerDirection",
    "LedgerEntryStatus",
    "LedgerEntryType",
    "PairingCycleStatus",
    "ParticipantStatus",
    "PayoutFrequency",
    "WalletName",
]
