"""Tests for DiscountCode validation and redemption."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.discount.discount_code import DiscountCode
from ordering.discount.events import DiscountCodeRedeemed
from protean.exceptions import ValidationError


class TestDiscountCodeCheck:
    def test_valid_code(self):
        result = DiscountCode.issue(code="save10", percentage=10).check("cust-001")
        assert result.valid
        assert result.percentage == 10.0
        assert result.code == "SAVE10"

    def test_admin_code_is_usable_by_anyone(self):
        code = DiscountCode.issue(code="ALL", percentage=5)
        assert code.check("cust-001").valid
        assert code.check("cust-002").valid

    def test_owned_code_rejects_other_users(self):
        code = DiscountCode.issue(code="MINE", percentage=5, owner_id="cust-001")
        assert code.check("cust-001").valid
        result = code.check("cust-002")
        assert not result.valid
        assert result.reason == "not_owner"

    def test_expired_code(self):
        code = DiscountCode.issue(code="OLD", percentage=5, expires_at=datetime.now(UTC) - timedelta(days=1))
        assert code.check("cust-001").reason == "expired"

    def test_naive_expiry_is_treated_as_utc(self):
        code = DiscountCode.issue(code="SOON", percentage=5, expires_at=datetime(2999, 1, 1))
        assert code.check("cust-001").valid

    def test_used_code(self):
        code = DiscountCode.issue(code="ONCE", percentage=5)
        code.redeem("cust-001", "order-1")
        assert code.check("cust-001").reason == "already_used"


class TestDiscountCodeRedemption:
    def test_redeem_marks_used(self):
        code = DiscountCode.issue(code="ONCE", percentage=5)
        code.redeem("cust-001", "order-1")
        assert code.is_used
        assert str(code.used_by) == "cust-001"
        assert str(code.order_id) == "order-1"
        assert isinstance(code._events[-1], DiscountCodeRedeemed)

    def test_cannot_redeem_twice(self):
        code = DiscountCode.issue(code="ONCE", percentage=5)
        code.redeem("cust-001", "order-1")
        with pytest.raises(ValidationError):
            code.redeem("cust-001", "order-2")
