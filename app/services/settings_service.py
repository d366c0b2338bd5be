"""
Payout settings service.

Loads business settings from the settings store into an immutable
PayoutConfig snapshot. A run works from one snapshot from start to end.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import business_constants as bc
from app.repositories.system_setting_repository import SystemSettingRepository
from app.services.base_service import BaseService


@dataclass(frozen=True)
class PayoutConfig:
    """Business settings snapshot for one run."""

    mlm_enabled: bool = True
    direct_percentage: Decimal = bc.DEFAULT_DIRECT_REFERRAL_PERCENTAGE
    level_percentages: dict[int, Decimal] = field(
        default_factory=lambda: dict(bc.DEFAULT_LEVEL_PERCENTAGES)
    )
    level_requires_active_investment: bool = True
    binary_enabled: bool = True
    pair_value: Decimal = bc.DEFAULT_PAIR_VALUE
    commission_per_pair: Decimal = bc.DEFAULT_COMMISSION_PER_PAIR
    daily_cap: Decimal = bc.DEFAULT_DAILY_CAP
    roi_enabled: bool = True

    @property
    def binary_percentage(self) -> Decimal:
        """Commission per pair as percent of pair value."""
        return self.commission_per_pair / self.pair_value * 100

    def level_percentage(self, level: int) -> Decimal:
        """Percentage for an upline level (0 when not configured)."""
        return self.level_percentages.get(level, Decimal("0"))


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _to_decimal(value: Any, positive: bool = False) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"not a number: {value!r}") from e
    if not number.is_finite() or number < 0 or (positive and number == 0):
        raise ValueError(f"out of range: {value!r}")
    return number


def _to_level_map(value: Any) -> dict[int, Decimal]:
    if not isinstance(value, dict) or not value:
        raise ValueError(f"not a level mapping: {value!r}")
    levels: dict[int, Decimal] = {}
    for raw_level, raw_pct in value.items():
        level = int(raw_level)
        if not 2 <= level <= bc.MAX_UPLINE_LEVELS:
            raise ValueError(f"level out of range: {raw_level!r}")
        levels[level] = _to_decimal(raw_pct)
    return levels


class SettingsService(BaseService):
    """Reads and seeds payout business settings."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize settings service."""
        super().__init__(session)
        self.setting_repo = SystemSettingRepository(session)

    async def load_config(self) -> PayoutConfig:
        """
        Build a PayoutConfig from the settings store.

        Missing keys use documented defaults silently; malformed values use
        the default with a warning.

        Returns:
            Immutable settings snapshot
        """
        stored = await self.setting_repo.get_by_prefix()
        defaults = PayoutConfig()

        def pick(key: str, parser, default):
            if key not in stored or stored[key] is None:
                return default
            try:
                return parser(stored[key])
            except (ValueError, TypeError) as e:
                self.logger.warning(
                    f"Invalid setting {key}={stored[key]!r}, "
                    f"using default {default!r}: {e}"
                )
                return default

        return PayoutConfig(
            mlm_enabled=pick(bc.MLM_ENABLED, _to_bool, defaults.mlm_enabled),
            direct_percentage=pick(
                bc.MLM_DIRECT_REFERRAL_PERCENTAGE,
                _to_decimal,
                defaults.direct_percentage,
            ),
            level_percentages=pick(
                bc.MLM_LEVEL_PERCENTAGES,
                _to_level_map,
                defaults.level_percentages,
            ),
            level_requires_active_investment=pick(
                bc.MLM_LEVEL_REQUIRES_ACTIVE_INVESTMENT,
                _to_bool,
                defaults.level_requires_active_investment,
            ),
            binary_enabled=pick(
                bc.BINARY_ENABLED, _to_bool, defaults.binary_enabled
            ),
            pair_value=pick(
                bc.BINARY_PAIR_VALUE,
                lambda v: _to_decimal(v, positive=True),
                defaults.pair_value,
            ),
            commission_per_pair=pick(
                bc.BINARY_COMMISSION_PER_PAIR,
                _to_decimal,
                defaults.commission_per_pair,
            ),
            daily_cap=pick(bc.BINARY_DAILY_CAP, _to_decimal, defaults.daily_cap),
            roi_enabled=pick(bc.ROI_ENABLED, _to_bool, defaults.roi_enabled),
        )

    async def seed_defaults(self) -> int:
        """
        Insert documented defaults for keys that are not stored yet.

        Returns:
            Number of settings created
        """
        existing = {setting.key for setting in await self.setting_repo.find_all()}
        created = 0
        for key, value in bc.DEFAULT_SETTINGS.items():
            if key in existing:
                continue
            await self.setting_repo.create(
                key=key,
                value=value,
                description=bc.SETTING_DESCRIPTIONS.get(key),
            )
            created += 1
        self.logger.info(f"Seeded {created} default settings")
        return created
