"""
Commission services package.

Contains:
- eligibility: Direct and level commission eligibility rules
- binary_pairing: Pairing arithmetic and pairing cycle processor
- commission_engine: Investment commissions and binary pairing entry point
- income_reports: Binary history and level income summaries
"""

from app.services.commission.binary_pairing import (
    BinaryPairingProcessor,
    PairingOutcome,
    PairingResult,
    match_pairs,
)
from app.services.commission.commission_engine import (
    CommissionEngine,
    CommissionRunResult,
    dispatch_volume_propagation,
)
from app.services.commission.eligibility import CommissionEligibility, Eligibility
from app.services.commission.income_reports import IncomeReportService


__all__ = [
    "BinaryPairingProcessor",
    "CommissionEligibility",
    "CommissionEngine",
    "CommissionRunResult",
    "Eligibility",
    "IncomeReportService",
    "PairingOutcome",
    "PairingResult",
    "dispatch_volume_propagation",
    "match_pairs",
]
