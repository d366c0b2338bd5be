"""
Services.

Business logic layer.
"""

from app.services.audit_service import AuditTrail, ChainVerification
from app.services.base_service import BaseService, log_operation
from app.services.commission import CommissionEngine, CommissionRunResult
from app.services.distribution import (
    BINARY_JOB,
    ROI_JOB,
    DistributionScheduler,
    JobRunReport,
)
from app.services.events import EventBus, PayoutEvent, PayoutEvents, event_bus
from app.services.ledger_service import LedgerResult, LedgerService
from app.services.settings_service import PayoutConfig, SettingsService
from app.services.tree_placement_service import (
    TreePlacement,
    TreePlacementService,
)


__all__ = [
    # Base
    "BaseService",
    "log_operation",
    # Events and audit
    "AuditTrail",
    "ChainVerification",
    "EventBus",
    "PayoutEvent",
    "PayoutEvents",
    "event_bus",
    # Settings
    "PayoutConfig",
    "SettingsService",
    # Tree
    "TreePlacement",
    "TreePlacementService",
    # Money
    "CommissionEngine",
    "CommissionRunResult",
    "LedgerResult",
    "LedgerService",
    # Jobs
    "BINARY_JOB",
    "ROI_JOB",
    "DistributionScheduler",
    "JobRunReport",
]
