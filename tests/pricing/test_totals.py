"""Tests for cart/checkout totals aggregation."""

from dataclasses import replace

import pytest
from pricing.config import PricingConfig
from pricing.coupons import CouponResult, DiscountCodeLookup, StaticDiscountCodes
from pricing.items import CartItem
from pricing.tiers import normalize_tiers
from pricing.totals import TotalsAggregator
from protean.exceptions import ValidationError

CONFIG = replace(PricingConfig(), default_tiers=normalize_tiers([{"quantity": 5, "discount": 5}]))


class ExplodingLookup(DiscountCodeLookup):
    def resolve(self, code, user_id):
        raise RuntimeError("lookup unavailable")


def _item(base_price, quantity=1, seller_discount=0.0, seller_id="s1", product_id="p1"):
    return CartItem(
        product_id=product_id,
        quantity=quantity,
        base_price=base_price,
        seller_discount_percentage=seller_discount,
        seller_id=seller_id,
    )


class TestTotalsAggregator:
    def test_full_breakdown(self):
        totals = TotalsAggregator(CONFIG).aggregate([_item(100.0, quantity=5, seller_discount=10)])
        data = totals.to_dict()

        assert data["subtotal"] == 500.0
        assert data["seller_discount"] == 50.0
        assert data["volume_discount"] == 22.5
        assert data["subtotal_with_discounts"] == 427.5
        assert data["coupon_discount"] == 0.0
        assert data["subtotal_after_coupon"] == 427.5
        assert data["iva_amount"] == 64.13
        assert data["shipping_cost"] == 0.0
        assert data["free_shipping"] is True
        assert data["final_total"] == 491.63
        assert data["coupon_info"] is None

    def test_final_total_identity_holds_on_output(self):
        totals = TotalsAggregator(CONFIG, StaticDiscountCodes({"SAVE10": 10})).aggregate(
            [_item(100.0, quantity=5, seller_discount=10), _item(7.35, quantity=3, seller_id="s2", product_id="p2")],
            coupon_code="SAVE10",
        )
        data = totals.to_dict()
        expected = (
            data["subtotal"]
            - data["seller_discount"]
            - data["volume_discount"]
            - data["coupon_discount"]
            + data["iva_amount"]
            + data["shipping_cost"]
        )
        assert data["final_total"] == pytest.approx(expected, abs=0.011)

    def test_free_shipping_at_exact_threshold(self):
        totals = TotalsAggregator(CONFIG).aggregate([_item(50.0)])
        assert totals.shipping_cost == 0.0
        assert totals.free_shipping is True

    def test_standard_shipping_just_below_threshold(self):
        totals = TotalsAggregator(CONFIG).aggregate([_item(49.99)])
        assert totals.shipping_cost == 5.0
        assert totals.free_shipping is False
        assert totals.final_total == pytest.approx(49.99 + 49.99 * 0.15 + 5.0)

    def test_half_cent_below_threshold_pays_shipping(self):
        totals = TotalsAggregator(CONFIG).aggregate([_item(49.995)])
        assert totals.free_shipping is False
        assert totals.shipping_cost == 5.0

    def test_threshold_reached_by_several_items(self):
        items = [_item(16.7, product_id="p1"), _item(16.6, product_id="p2"), _item(16.7, product_id="p3")]
        totals = TotalsAggregator(CONFIG).aggregate(items)
        assert totals.free_shipping is True

    def test_threshold_uses_subtotal_after_coupon(self):
        totals = TotalsAggregator(CONFIG, StaticDiscountCodes({"HALF": 50})).aggregate(
            [_item(60.0)], coupon_code="HALF"
        )
        assert totals.subtotal_after_coupon == pytest.approx(30.0)
        assert totals.shipping_cost == 5.0

    def test_shipping_disabled(self):
        config = replace(CONFIG, shipping_enabled=False)
        totals = TotalsAggregator(config).aggregate([_item(10.0)])
        assert totals.shipping_cost == 0.0
        assert totals.free_shipping is True

    def test_tax_is_applied_after_coupon_and_not_on_shipping(self):
        totals = TotalsAggregator(CONFIG, StaticDiscountCodes({"SAVE10": 10})).aggregate(
            [_item(40.0)], coupon_code="SAVE10"
        )
        assert totals.coupon_discount == pytest.approx(4.0)
        assert totals.iva_amount == pytest.approx(36.0 * 0.15)
        assert totals.final_total == pytest.approx(36.0 + 5.4 + 5.0)

    def test_valid_coupon_is_reported(self):
        totals = TotalsAggregator(CONFIG, StaticDiscountCodes({"SAVE10": 10})).aggregate(
            [_item(100.0)], coupon_code="save10"
        )
        info = totals.to_dict()["coupon_info"]
        assert info["valid"] is True
        assert info["applied"] is True
        assert info["percentage"] == 10.0

    def test_unknown_coupon_is_zero_discount(self):
        totals = TotalsAggregator(CONFIG, StaticDiscountCodes({})).aggregate([_item(100.0)], coupon_code="NOPE")
        assert totals.coupon_discount == 0.0
        assert totals.coupon == CouponResult(code="NOPE", valid=False, reason="not_found")

    def test_failing_lookup_does_not_fail_totals(self):
        totals = TotalsAggregator(CONFIG, ExplodingLookup()).aggregate([_item(100.0)], coupon_code="ANY")
        assert totals.coupon_discount == 0.0
        assert totals.coupon.reason == "lookup_failed"
        assert totals.final_total == pytest.approx(115.0)

    def test_per_seller_subtotals(self):
        totals = TotalsAggregator(CONFIG).aggregate(
            [_item(10.0, quantity=2, seller_id="s1"), _item(5.0, seller_id="s2", product_id="p2")]
        )
        sellers = totals.to_dict()["sellers"]
        assert sellers["s1"]["subtotal"] == 20.0
        assert sellers["s2"]["subtotal"] == 5.0

    def test_recomputation_is_deterministic(self):
        items = [_item(33.33, quantity=7, seller_discount=12.5), _item(0.99, quantity=19, product_id="p2")]
        first = TotalsAggregator(CONFIG).aggregate(items)
        second = TotalsAggregator(CONFIG).aggregate(items)
        assert first.final_total == second.final_total
        assert first.to_dict() == second.to_dict()

    def test_empty_items_raise(self):
        with pytest.raises(ValidationError) as exc_info:
            TotalsAggregator(CONFIG).aggregate([])
        assert "items" in exc_info.value.messages
