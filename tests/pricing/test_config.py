"""Tests for loading a PricingConfig snapshot from a configuration provider."""

import json

from pricing.config import DEFAULTS, InMemoryConfiguration, PricingConfig


class TestPricingConfigLoad:
    def test_defaults(self):
        config = PricingConfig.load(InMemoryConfiguration())
        assert config.tax_rate == 0.15
        assert config.shipping_cost == 5.0
        assert config.free_shipping_threshold == 50.0
        assert config.single_seller_percentage == 80.0
        assert config.per_seller_percentage == 40.0
        assert config.commission_rate == 10.0
        assert [t.min_quantity for t in config.default_tiers] == [5, 6, 19]
        assert config == PricingConfig()

    def test_overrides(self):
        provider = InMemoryConfiguration({"tax.rate": "0.12", "shipping.enabled": "false"})
        config = PricingConfig.load(provider)
        assert config.tax_rate == 0.12
        assert config.shipping_enabled is False

    def test_invalid_numbers_fall_back_to_defaults(self):
        provider = InMemoryConfiguration({"tax.rate": "abc", "shipping.default_cost": -3})
        config = PricingConfig.load(provider)
        assert config.tax_rate == DEFAULTS["tax.rate"]
        assert config.shipping_cost == DEFAULTS["shipping.default_cost"]

    def test_out_of_range_percentage_falls_back(self):
        config = PricingConfig.load(InMemoryConfiguration({"platform.commission_rate": 250}))
        assert config.commission_rate == 10.0

    def test_tiers_from_json_string(self):
        provider = InMemoryConfiguration(
            {"volume_discounts.default_tiers": json.dumps([{"quantity": 3, "discount": 7}])}
        )
        config = PricingConfig.load(provider)
        assert len(config.default_tiers) == 1
        assert config.default_tiers[0].min_quantity == 3

    def test_malformed_tiers_mean_no_discount(self):
        config = PricingConfig.load(InMemoryConfiguration({"volume_discounts.default_tiers": "oops"}))
        assert config.default_tiers == ()

    def test_infinite_tier_quantity_means_no_discount(self):
        provider = InMemoryConfiguration({"volume_discounts.default_tiers": '[{"quantity": Infinity, "discount": 5}]'})
        assert PricingConfig.load(provider).default_tiers == ()

    def test_non_finite_numbers_fall_back_to_defaults(self):
        provider = InMemoryConfiguration({"tax.rate": float("nan"), "shipping.default_cost": float("inf")})
        config = PricingConfig.load(provider)
        assert config.tax_rate == DEFAULTS["tax.rate"]
        assert config.shipping_cost == DEFAULTS["shipping.default_cost"]

    def test_product_tiers(self):
        provider = InMemoryConfiguration(
            {"volume_discounts.product_tiers": {"p1": [{"quantity": 2, "discount": 20}], "p2": "bad"}}
        )
        config = PricingConfig.load(provider)
        assert config.product_tiers["p1"][0].discount_percentage == 20.0
        assert config.product_tiers["p2"] == ()

    def test_snapshot_is_detached_from_provider(self):
        provider = InMemoryConfiguration()
        config = PricingConfig.load(provider)
        provider.set("tax.rate", 0.5)
        assert config.tax_rate == 0.15
