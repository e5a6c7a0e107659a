import pytest
from ordering.configuration.setting import (
    ConfigurationSetting,
    RepositoryConfiguration,
    SetConfiguration,
    current_config,
)
from pricing.config import DEFAULT_TIERS
from protean import current_domain
from protean.exceptions import ValidationError


def _set(key, value):
    return current_domain.process(SetConfiguration(key=key, value=value), asynchronous=False)


class TestSetConfiguration:
    def test_defaults_without_stored_settings(self):
        config = current_config()
        assert config.tax_rate == 0.15
        assert config.free_shipping_threshold == 50.0
        assert [t.min_quantity for t in config.default_tiers] == [t["quantity"] for t in DEFAULT_TIERS]

    def test_stored_value_is_used(self):
        _set("tax.rate", "0.12")
        assert current_config().tax_rate == 0.12

    def test_update_existing_setting(self):
        _set("shipping.default_cost", "7.5")
        _set("shipping.default_cost", "9")

        setting = current_domain.repository_for(ConfigurationSetting).get("shipping.default_cost")
        assert setting.parsed_value == 9
        assert current_config().shipping_cost == 9.0

    def test_tiers_can_be_replaced(self):
        _set("volume_discounts.default_tiers", '[{"quantity": 3, "discount": 20, "label": "Promo"}]')

        tiers = current_config().default_tiers
        assert len(tiers) == 1
        assert tiers[0].label == "Promo"

    def test_unknown_key(self):
        with pytest.raises(ValidationError) as exc_info:
            _set("shipping.teleport", "true")
        assert "key" in exc_info.value.messages

    def test_invalid_json(self):
        with pytest.raises(ValidationError) as exc_info:
            _set("tax.rate", "{oops")
        assert "value" in exc_info.value.messages

    def test_out_of_range_value_falls_back_to_default(self):
        _set("tax.rate", "7")
        assert current_config().tax_rate == 0.15


class TestRepositoryConfiguration:
    def test_missing_key_returns_default(self):
        assert RepositoryConfiguration().get("tax.rate", "fallback") == "fallback"

    def test_reads_parsed_value(self):
        _set("checkout.block_on_price_mismatch", "true")
        assert RepositoryConfiguration().get("checkout.block_on_price_mismatch") is True
