"""
Exception handling utilities.

Defines domain exception types and categories for batch error handling.
"""

from decimal import Decimal

from sqlalchemy.exc import InterfaceError, OperationalError


class PayoutError(Exception):
    """Base class for referral payout errors."""

    pass


class TreeIntegrityError(PayoutError):
    """Placement or sponsor structure is corrupt (cycle, depth ceiling)."""

    pass


class InsufficientBalance(PayoutError):
    """Debit would take a wallet balance below zero."""

    def __init__(
        self,
        participant_id: int,
        wallet_name: str,
        requested: Decimal,
        available: Decimal | None = None,
    ) -> None:
        self.participant_id = participant_id
        self.wallet_name = wallet_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient {wallet_name} balance for participant "
            f"{participant_id}: requested {requested}, available {available}"
        )


class DuplicateCommission(PayoutError):
    """Commission for this (event, recipient, type, level) already exists."""

    pass


class EligibilityFailure(PayoutError):
    """Recipient is not eligible for a commission."""

    def __init__(self, participant_id: int, reason: str) -> None:
        self.participant_id = participant_id
        self.reason = reason
        super().__init__(f"Participant {participant_id} not eligible: {reason}")


class LockContention(PayoutError):
    """Another runner holds the job lock."""

    def __init__(self, job_name: str, locked_by: str | None = None) -> None:
        self.job_name = job_name
        self.locked_by = locked_by
        super().__init__(
            f"Job {job_name} is locked"
            f"{f' by {locked_by}' if locked_by else ''}"
        )


class LedgerInconsistency(PayoutError):
    """Balance arithmetic or idempotency key mismatch. Never auto-corrected."""

    pass


class ConcurrentUpdateError(PayoutError):
    """A compare-and-swap lost against a concurrent writer."""

    pass


# Exception categories based on handling strategy

# Item-level failures: counted and logged, batch continues
ITEM_LEVEL = (
    TreeIntegrityError,
    InsufficientBalance,
    EligibilityFailure,
    LedgerInconsistency,
    ConcurrentUpdateError,
)

# Treated as success by the caller
SAFE_TO_IGNORE = (
    DuplicateCommission,
)

# Must abort the run - infrastructure is unavailable
MUST_ABORT_RUN = (
    OperationalError,
    InterfaceError,
)


def is_item_level(exc: Exception) -> bool:
    """
    Check if exception is confined to a single batch item.

    Args:
        exc: Exception to check

    Returns:
        True if the batch may continue
    """
    return isinstance(exc, ITEM_LEVEL)


def is_safe_to_ignore(exc: Exception) -> bool:
    """
    Check if exception can be safely ignored.

    Args:
        exc: Exception to check

    Returns:
        True if exception is safe to ignore
    """
    return isinstance(exc, SAFE_TO_IGNORE)


def must_abort_run(exc: Exception) -> bool:
    """
    Check if exception must abort the whole run.

    Args:
        exc: Exception to check

    Returns:
        True if the run cannot continue
    """
    return isinstance(exc, MUST_ABORT_RUN)
