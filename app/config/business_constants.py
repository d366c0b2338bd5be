"""
Business logic constants.

Documented defaults for the payout settings store. Each key is read at
the start of a run; a missing or malformed key falls back to the value here.
"""

from decimal import Decimal


# Setting keys
MLM_ENABLED = "mlm.enabled"
MLM_DIRECT_REFERRAL_PERCENTAGE = "mlm.direct_referral_percentage"
MLM_LEVEL_PERCENTAGES = "mlm.level_percentages"
MLM_LEVEL_REQUIRES_ACTIVE_INVESTMENT = "mlm.level_requires_active_investment"
BINARY_ENABLED = "binary.enabled"
BINARY_PAIR_VALUE = "binary.pair_value"
BINARY_COMMISSION_PER_PAIR = "binary.commission_per_pair"
BINARY_DAILY_CAP = "binary.daily_cap"
ROI_ENABLED = "roi.enabled"

# Direct referral commission, percent of the invested amount
DEFAULT_DIRECT_REFERRAL_PERCENTAGE = Decimal("10")

# Level commission percentages keyed by upline level.
# Level 1 is the sponsor and is paid as direct commission.
DEFAULT_LEVEL_PERCENTAGES: dict[int, Decimal] = {
    2: Decimal("5"),
    3: Decimal("3"),
    4: Decimal("2"),
    5: Decimal("1"),
}

# Binary pairing
DEFAULT_PAIR_VALUE = Decimal("1000")
DEFAULT_COMMISSION_PER_PAIR = Decimal("100")
DEFAULT_DAILY_CAP = Decimal("50000")

# Sponsor chain depth
MAX_UPLINE_LEVELS = 5

# Money precision (matches MoneyType scale)
MONEY_QUANT = Decimal("0.00000001")

# Defaults as stored in the settings table (JSON-friendly)
DEFAULT_SETTINGS: dict[str, object] = {
    MLM_ENABLED: True,
    MLM_DIRECT_REFERRAL_PERCENTAGE: str(DEFAULT_DIRECT_REFERRAL_PERCENTAGE),
    MLM_LEVEL_PERCENTAGES: {
        str(level): str(pct) for level, pct in DEFAULT_LEVEL_PERCENTAGES.items()
    },
    MLM_LEVEL_REQUIRES_ACTIVE_INVESTMENT: True,
    BINARY_ENABLED: True,
    BINARY_PAIR_VALUE: str(DEFAULT_PAIR_VALUE),
    BINARY_COMMISSION_PER_PAIR: str(DEFAULT_COMMISSION_PER_PAIR),
    BINARY_DAILY_CAP: str(DEFAULT_DAILY_CAP),
    ROI_ENABLED: True,
}

SETTING_DESCRIPTIONS: dict[str, str] = {
    MLM_ENABLED: "Enable direct and level commissions",
    MLM_DIRECT_REFERRAL_PERCENTAGE: "Direct referral commission percent",
    MLM_LEVEL_PERCENTAGES: "Level commission percent by upline level (2-5)",
    MLM_LEVEL_REQUIRES_ACTIVE_INVESTMENT: (
        "Level commission recipients must hold an active investment"
    ),
    BINARY_ENABLED: "Enable the daily binary pairing job",
    BINARY_PAIR_VALUE: "Volume matched on each leg per pair",
    BINARY_COMMISSION_PER_PAIR: "Commission paid per matched pair",
    BINARY_DAILY_CAP: "Maximum binary commission per participant per day",
    ROI_ENABLED: "Enable the daily ROI distribution job",
}
