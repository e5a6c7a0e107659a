from protean.utils.globals import current_domain

from ordering.discount.discount_code import DiscountCode
from pricing.coupons import CouponResult, DiscountCodeLookup


class RepositoryDiscountCodeLookup(DiscountCodeLookup):
    """Resolve coupon codes against persisted ``DiscountCode`` records."""

    def resolve(self, code: str, user_id) -> CouponResult:
        discount_code = current_domain.repository_for(DiscountCode).by_code(code)
        if discount_code is None:
            return CouponResult(code=code, valid=False, reason="not_found")
        return discount_code.check(user_id)
