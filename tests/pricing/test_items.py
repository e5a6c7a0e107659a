"""Tests for per-item pricing (seller discount, then volume discount)."""

from dataclasses import replace

import pytest
from pricing.config import PricingConfig
from pricing.items import CartItem, ItemPriceCalculator
from pricing.tiers import VolumeDiscountResolver, normalize_tiers
from protean.exceptions import ValidationError


def _calculator(tiers=None, enabled=True):
    config = replace(
        PricingConfig(),
        default_tiers=normalize_tiers(tiers if tiers is not None else [{"quantity": 5, "discount": 5}]),
        volume_discounts_enabled=enabled,
    )
    return ItemPriceCalculator(VolumeDiscountResolver(config))


class TestItemPriceCalculator:
    def test_reference_example(self):
        item = CartItem(product_id="p1", quantity=5, base_price=100.0, seller_discount_percentage=10)
        priced = _calculator().price(item)

        assert priced.price_after_seller == pytest.approx(90.0)
        assert priced.final_unit_price == pytest.approx(85.5)
        assert priced.line_subtotal == pytest.approx(427.5)
        assert priced.savings == pytest.approx(72.5)

    def test_seller_discount_is_attributed_before_volume_discount(self):
        item = CartItem(product_id="p1", quantity=5, base_price=100.0, seller_discount_percentage=10)
        priced = _calculator().price(item)

        # Seller 10% off 100, then volume 5% off 90
        assert priced.seller_discount_amount == pytest.approx(10.0)
        assert priced.volume_discount_amount == pytest.approx(4.5)
        # Volume first would attribute 5.0 to the volume discount instead
        assert priced.volume_discount_amount != pytest.approx(100.0 * 0.05)

    def test_no_discounts(self):
        priced = _calculator().price(CartItem(product_id="p1", quantity=2, base_price=19.99))
        assert priced.final_unit_price == pytest.approx(19.99)
        assert priced.line_subtotal == pytest.approx(39.98)
        assert priced.savings == 0.0
        assert priced.tier_label is None

    def test_tier_label_is_recorded(self):
        priced = _calculator([{"quantity": 3, "discount": 10, "label": "Bulk"}]).price(
            CartItem(product_id="p1", quantity=3, base_price=10.0)
        )
        assert priced.tier_label == "Bulk"
        assert priced.volume_discount_percentage == pytest.approx(0.10)

    def test_seller_discount_is_clamped(self):
        calculator = _calculator(enabled=False)
        over = calculator.price(CartItem(product_id="p1", quantity=1, base_price=50.0, seller_discount_percentage=150))
        under = calculator.price(CartItem(product_id="p1", quantity=1, base_price=50.0, seller_discount_percentage=-20))

        assert over.final_unit_price == 0.0
        assert under.final_unit_price == pytest.approx(50.0)

    def test_nan_discount_counts_as_zero(self):
        calculator = _calculator(enabled=False)
        priced = calculator.price(
            CartItem(product_id="p1", quantity=1, base_price=50.0, seller_discount_percentage=float("nan"))
        )
        assert priced.final_unit_price == pytest.approx(50.0)

    def test_to_dict_rounds_for_output(self):
        priced = _calculator(enabled=False).price(
            CartItem(product_id="p1", quantity=3, base_price=10.0, seller_discount_percentage=33.333)
        )
        data = priced.to_dict()
        assert data["final_unit_price"] == 6.67
        assert data["line_subtotal"] == 20.0


class TestCartItemFromDict:
    def test_builds_item_with_fallback_seller(self):
        item = CartItem.from_dict({"product_id": "p1", "quantity": 2, "base_price": 10}, default_seller_id="s1")
        assert item.seller_id == "s1"
        assert item.base_price == 10.0

    def test_item_seller_wins_over_fallback(self):
        item = CartItem.from_dict(
            {"product_id": "p1", "quantity": 2, "base_price": 10, "seller_id": "s2"}, default_seller_id="s1"
        )
        assert item.seller_id == "s2"

    def test_collects_field_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            CartItem.from_dict({"quantity": 0, "base_price": -1})
        assert {"product_id", "quantity", "base_price"} <= set(exc_info.value.messages)

    def test_non_numeric_price(self):
        with pytest.raises(ValidationError) as exc_info:
            CartItem.from_dict({"product_id": "p1", "quantity": 1, "base_price": "free"})
        assert "base_price" in exc_info.value.messages

    @pytest.mark.parametrize("field", ["base_price", "seller_discount_percentage"])
    def test_non_finite_numbers_are_rejected(self, field):
        data = {"product_id": "p1", "quantity": 1, "base_price": 10.0, field: float("nan")}
        with pytest.raises(ValidationError) as exc_info:
            CartItem.from_dict(data)
        assert field in exc_info.value.messages
