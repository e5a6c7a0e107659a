"""DiscountCode aggregate (CQRS): single-use percentage coupons.

A code with an owner can only be redeemed by that user; a code without
one (issued by an administrator) is usable by anyone. Each code is
redeemed at most once, at checkout.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String

from ordering.discount.events import DiscountCodeIssued, DiscountCodeRedeemed
from ordering.domain import ordering
from pricing.coupons import CouponResult


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@ordering.aggregate
class DiscountCode:
    code = String(required=True, max_length=50)
    percentage = Float(required=True, min_value=0.0, max_value=100.0)
    owner_id = Identifier()  # None: usable by anyone
    expires_at = DateTime()
    is_used = Boolean(default=False)
    used_by = Identifier()
    used_at = DateTime()
    order_id = Identifier()
    created_at = DateTime()

    @classmethod
    def issue(cls, code, percentage, owner_id=None, expires_at=None):
        now = datetime.now(UTC)
        discount_code = cls(
            code=normalize_code(code),
            percentage=percentage,
            owner_id=owner_id,
            expires_at=_aware(expires_at),
            is_used=False,
            created_at=now,
        )
        discount_code.raise_(
            DiscountCodeIssued(
                discount_code_id=str(discount_code.id),
                code=discount_code.code,
                percentage=percentage,
                owner_id=str(owner_id) if owner_id else None,
            )
        )
        return discount_code

    def check(self, user_id=None, now: datetime | None = None) -> CouponResult:
        """Resolve this code for ``user_id`` without changing it."""
        now = now or datetime.now(UTC)

        if self.is_used:
            return CouponResult(code=self.code, valid=False, reason="already_used")
        expires_at = _aware(self.expires_at)
        if expires_at is not None and expires_at < now:
            return CouponResult(code=self.code, valid=False, reason="expired")
        if self.owner_id and str(self.owner_id) != str(user_id):
            return CouponResult(code=self.code, valid=False, reason="not_owner")
        return CouponResult(code=self.code, percentage=self.percentage, valid=True)

    def redeem(self, user_id, order_id) -> None:
        result = self.check(user_id)
        if not result.valid:
            raise ValidationError({"discount_code": [f"Discount code cannot be redeemed: {result.reason}"]})

        now = datetime.now(UTC)
        self.is_used = True
        self.used_by = user_id
        self.used_at = now
        self.order_id = order_id

        self.raise_(
            DiscountCodeRedeemed(
                discount_code_id=str(self.id),
                code=self.code,
                user_id=str(user_id),
                order_id=str(order_id),
                redeemed_at=now,
            )
        )


@ordering.repository(part_of=DiscountCode)
class DiscountCodeRepository:
    def by_code(self, code: str) -> DiscountCode | None:
        results = self._dao.query.filter(code=normalize_code(code)).all().items
        return results[0] if results else None
