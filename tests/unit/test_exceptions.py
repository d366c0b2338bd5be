"""Tests for exception categories."""

from decimal import Decimal

from sqlalchemy.exc import IntegrityError, OperationalError

from app.utils.exceptions import (
    DuplicateCommission,
    EligibilityFailure,
    InsufficientBalance,
    LedgerInconsistency,
    LockContention,
    PayoutError,
    TreeIntegrityError,
    is_item_level,
    is_safe_to_ignore,
    must_abort_run,
)


class TestExceptionCategories:
    def test_domain_errors_are_item_level(self):
        assert is_item_level(TreeIntegrityError("loop"))
        assert is_item_level(LedgerInconsistency("mismatch"))
        assert is_item_level(InsufficientBalance(1, "main", Decimal("5"), Decimal("1")))
        assert is_item_level(EligibilityFailure(3, "no_active_investment"))

    def test_duplicate_commission_is_safe_to_ignore(self):
        assert is_safe_to_ignore(DuplicateCommission("again"))
        assert not is_safe_to_ignore(LedgerInconsistency("mismatch"))

    def test_storage_outage_aborts_run(self):
        assert must_abort_run(OperationalError("SELECT 1", {}, Exception("down")))

    def test_constraint_violation_does_not_abort_run(self):
        assert not must_abort_run(IntegrityError("INSERT", {}, Exception("dup")))

    def test_all_domain_errors_share_base(self):
        assert issubclass(LockContention, PayoutError)
        assert issubclass(DuplicateCommission, PayoutError)


class TestMessages:
    def test_insufficient_balance_message(self):
        error = InsufficientBalance(7, "main", Decimal("10"), Decimal("2.5"))

        assert error.participant_id == 7
        assert "requested 10" in str(error)
        assert "available 2.5" in str(error)

    def test_lock_contention_names_holder(self):
        assert "by worker-2" in str(LockContention("daily_roi_distribution", "worker-2"))
        assert str(LockContention("daily_roi_distribution")) == (
            "Job daily_roi_distribution is locked"
        )

    def test_eligibility_failure_carries_reason(self):
        error = EligibilityFailure(3, "no_active_investment")

        assert error.reason == "no_active_investment"
        assert str(error) == "Participant 3 not eligible: no_active_investment"
