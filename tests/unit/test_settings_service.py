"""Tests for payout settings loading."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.config import business_constants as bc
from app.services.settings_service import PayoutConfig, SettingsService


@pytest.fixture
def settings_service(mock_session):
    service = SettingsService(mock_session)
    service.setting_repo.get_by_prefix = AsyncMock(return_value={})
    return service


class TestLoadConfig:
    """Tests for SettingsService.load_config."""

    async def test_empty_store_uses_documented_defaults(self, settings_service):
        config = await settings_service.load_config()

        assert config == PayoutConfig()
        assert config.direct_percentage == Decimal("10")
        assert config.level_percentages == {
            2: Decimal("5"), 3: Decimal("3"), 4: Decimal("2"), 5: Decimal("1"),
        }
        assert config.pair_value == Decimal("1000")
        assert config.commission_per_pair == Decimal("100")
        assert config.daily_cap == Decimal("50000")
        assert config.roi_enabled is True

    async def test_stored_values_override_defaults(self, settings_service):
        settings_service.setting_repo.get_by_prefix.return_value = {
            bc.MLM_DIRECT_REFERRAL_PERCENTAGE: "7.5",
            bc.MLM_LEVEL_PERCENTAGES: {"2": "4", "3": 2},
            bc.BINARY_ENABLED: False,
            bc.BINARY_DAILY_CAP: 1500,
            bc.ROI_ENABLED: "false",
        }

        config = await settings_service.load_config()

        assert config.direct_percentage == Decimal("7.5")
        assert config.level_percentages == {2: Decimal("4"), 3: Decimal("2")}
        assert config.level_percentage(5) == Decimal("0")
        assert config.binary_enabled is False
        assert config.daily_cap == Decimal("1500")
        assert config.roi_enabled is False

    @pytest.mark.parametrize(
        "key,value",
        [
            (bc.BINARY_PAIR_VALUE, "0"),
            (bc.BINARY_PAIR_VALUE, "abc"),
            (bc.MLM_DIRECT_REFERRAL_PERCENTAGE, "-1"),
            (bc.MLM_LEVEL_PERCENTAGES, {"9": "1"}),
            (bc.MLM_LEVEL_PERCENTAGES, []),
            (bc.MLM_ENABLED, "maybe"),
            (bc.BINARY_DAILY_CAP, True),
        ],
    )
    async def test_malformed_value_falls_back(self, settings_service, key, value):
        """A malformed setting never fails the run."""
        settings_service.setting_repo.get_by_prefix.return_value = {key: value}

        config = await settings_service.load_config()

        assert config == PayoutConfig()

    def test_binary_percentage(self):
        config = PayoutConfig(
            pair_value=Decimal("1000"), commission_per_pair=Decimal("100")
        )
        assert config.binary_percentage == Decimal("10")

    def test_config_is_immutable(self):
        config = PayoutConfig()
        with pytest.raises(AttributeError):
            config.daily_cap = Decimal("1")
