"""Tests for binary pairing arithmetic."""

from decimal import Decimal

import pytest

from app.services.commission.binary_pairing import match_pairs


def pair(left, right, carry_left="0", carry_right="0", cap="50000"):
    return match_pairs(
        left_business=Decimal(left),
        right_business=Decimal(right),
        carry_left=Decimal(carry_left),
        carry_right=Decimal(carry_right),
        pair_value=Decimal("1000"),
        commission_per_pair=Decimal("100"),
        daily_cap=Decimal(cap),
    )


class TestMatchPairs:
    """Tests for match_pairs."""

    def test_stronger_left_leg_carries_remainder(self):
        """2500 vs 1800: one pair, left keeps 1500, right is consumed."""
        result = pair("2500", "1800")

        assert result.pairs == 1
        assert result.used_volume == Decimal("1000")
        assert result.gross_commission == Decimal("100")
        assert result.final_commission == Decimal("100")
        assert result.carry_out_left == Decimal("1500")
        assert result.carry_out_right == Decimal("0")
        assert result.capping_applied is False

    def test_stronger_right_leg_carries_remainder(self):
        result = pair("1200", "3700")

        assert result.pairs == 1
        assert result.carry_out_left == Decimal("0")
        assert result.carry_out_right == Decimal("2700")

    def test_carry_in_adds_to_business(self):
        """Carry from earlier cycles counts towards the leg totals."""
        result = pair("500", "1000", carry_left="1500")

        assert result.total_left == Decimal("2000")
        assert result.total_right == Decimal("1000")
        assert result.pairs == 1
        assert result.carry_out_left == Decimal("1000")
        assert result.carry_out_right == Decimal("0")

    def test_equal_legs_carry_nothing(self):
        """Equal legs drop the unpaired remainder on both sides."""
        result = pair("2500", "2500")

        assert result.pairs == 2
        assert result.carry_out_left == Decimal("0")
        assert result.carry_out_right == Decimal("0")

    def test_no_pairs_keeps_carries_unchanged(self):
        result = pair("900", "5000", carry_left="0", carry_right="300")

        assert result.pairs == 0
        assert result.final_commission == Decimal("0")
        assert result.carry_out_left == Decimal("0")
        assert result.carry_out_right == Decimal("300")

    def test_daily_cap_limits_commission(self):
        result = pair("10000", "9000", cap="500")

        assert result.pairs == 9
        assert result.gross_commission == Decimal("900")
        assert result.final_commission == Decimal("500")
        assert result.capping_applied is True
        # Capping never changes how much volume is consumed
        assert result.carry_out_left == Decimal("1000")

    def test_commission_equal_to_cap_is_not_capped(self):
        result = pair("5000", "5000", cap="500")

        assert result.final_commission == Decimal("500")
        assert result.capping_applied is False

    def test_fractional_volume_floors_pairs(self):
        result = pair("1999.99", "1999.99")

        assert result.pairs == 1

    def test_non_positive_pair_value_rejected(self):
        with pytest.raises(ValueError):
            match_pairs(
                Decimal("1"), Decimal("1"), Decimal("0"), Decimal("0"),
                Decimal("0"), Decimal("100"), Decimal("1000"),
            )
