"""Tests for client/server totals reconciliation."""

import pytest
from pricing.config import PricingConfig
from pricing.errors import ReconciliationMismatch
from pricing.items import CartItem
from pricing.reconciliation import reconcile
from pricing.totals import TotalsAggregator


@pytest.fixture()
def totals():
    # 2 x 20.00, no discounts: 40.00 + 6.00 IVA + 5.00 shipping
    items = [CartItem(product_id="p1", quantity=2, base_price=20.0, seller_id="s1")]
    return TotalsAggregator(PricingConfig()).aggregate(items)


class TestReconcile:
    def test_matching_totals(self, totals):
        report = reconcile(totals, {"final_total": 51.0, "iva_amount": 6.0, "shipping_cost": 5.0})
        assert report.matches
        assert report.compared == ("final_total", "iva_amount", "shipping_cost")

    def test_difference_within_tolerance(self, totals):
        assert reconcile(totals, {"final_total": 51.01}, tolerance=0.01).matches

    def test_mismatch_is_reported(self, totals):
        report = reconcile(totals, {"final_total": 46.0, "subtotal_with_discounts": 40.0})
        assert not report.matches
        assert [m.field for m in report.mismatches] == ["final_total"]
        assert report.mismatches[0].difference == -5.0

    def test_only_submitted_fields_are_compared(self, totals):
        report = reconcile(totals, {})
        assert report.matches
        assert report.compared == ()

    def test_none_client_totals(self, totals):
        assert reconcile(totals, None).matches

    def test_non_numeric_values_are_skipped(self, totals):
        report = reconcile(totals, {"final_total": "lots"})
        assert report.compared == ()

    def test_raise_for_mismatch(self, totals):
        report = reconcile(totals, {"shipping_cost": 0.0})
        with pytest.raises(ReconciliationMismatch) as exc_info:
            report.raise_for_mismatch()
        assert exc_info.value.report is report

    def test_to_dict(self, totals):
        data = reconcile(totals, {"final_total": 50.0}).to_dict()
        assert data["matches"] is False
        assert data["mismatches"][0] == {"field": "final_total", "server": 51.0, "client": 50.0, "difference": -1.0}
