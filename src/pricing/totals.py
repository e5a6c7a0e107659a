"""Cart and checkout totals.

Sums priced items, applies the coupon, then tax and shipping::

    subtotal_with_discounts = sum(line_subtotal)
    subtotal_after_coupon   = subtotal_with_discounts - coupon_discount
    iva_amount              = subtotal_after_coupon * tax_rate
    final_total             = subtotal_after_coupon + iva_amount + shipping_cost

Figures are carried at full precision and rounded only in ``to_dict``.
"""

from collections import OrderedDict
from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError

from pricing.config import PricingConfig
from pricing.coupons import CouponResult, DiscountCodeLookup, NoDiscountCodes
from pricing.items import CartItem, ItemPriceCalculator, PricedItem
from pricing.money import clamp_percentage, round_money
from pricing.tiers import VolumeDiscountResolver

logger = structlog.get_logger(__name__)

_FLOAT_EPSILON = 1e-9


@dataclass(frozen=True)
class Totals:
    items: tuple[PricedItem, ...]
    subtotal: float
    seller_discount: float
    volume_discount: float
    subtotal_with_discounts: float
    coupon_discount: float
    subtotal_after_coupon: float
    tax_rate: float
    iva_amount: float
    shipping_cost: float
    free_shipping: bool
    free_shipping_threshold: float
    final_total: float
    coupon: CouponResult | None = None
    sellers: dict = field(default_factory=dict)

    @property
    def total_savings(self) -> float:
        return self.seller_discount + self.volume_discount + self.coupon_discount

    def items_for_seller(self, seller_id) -> list[PricedItem]:
        return [item for item in self.items if item.seller_id == seller_id]

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self.items],
            "sellers": {
                seller_id: {key: round_money(value) for key, value in figures.items()}
                for seller_id, figures in self.sellers.items()
            },
            "subtotal": round_money(self.subtotal),
            "seller_discount": round_money(self.seller_discount),
            "volume_discount": round_money(self.volume_discount),
            "subtotal_with_discounts": round_money(self.subtotal_with_discounts),
            "coupon_discount": round_money(self.coupon_discount),
            "subtotal_after_coupon": round_money(self.subtotal_after_coupon),
            "tax_rate": self.tax_rate,
            "iva_amount": round_money(self.iva_amount),
            "shipping_cost": round_money(self.shipping_cost),
            "free_shipping": self.free_shipping,
            "free_shipping_threshold": round_money(self.free_shipping_threshold),
            "total_savings": round_money(self.total_savings),
            "final_total": round_money(self.final_total),
            "coupon_info": self.coupon.to_dict() if self.coupon else None,
        }


class TotalsAggregator:
    """Compute ``Totals`` for a list of cart items under one config snapshot."""

    def __init__(self, config: PricingConfig, coupons: DiscountCodeLookup | None = None) -> None:
        self.config = config
        self.coupons = coupons or NoDiscountCodes()
        self.calculator = ItemPriceCalculator(VolumeDiscountResolver(config))

    def _resolve_coupon(self, code: str | None, user_id) -> CouponResult | None:
        if not code:
            return None
        try:
            return self.coupons.resolve(code, user_id)
        except Exception as exc:
            logger.warning("Discount code lookup failed, ignoring coupon", code=code, error=str(exc))
            return CouponResult(code=code, valid=False, reason="lookup_failed")

    def _shipping(self, subtotal_after_coupon: float) -> tuple[float, bool]:
        if not self.config.shipping_enabled:
            return 0.0, True
        # Full precision; the epsilon only absorbs binary float error.
        if subtotal_after_coupon >= self.config.free_shipping_threshold - _FLOAT_EPSILON:
            return 0.0, True
        return self.config.shipping_cost, False

    def aggregate(self, items: list[CartItem], coupon_code: str | None = None, user_id=None) -> Totals:
        if not items:
            raise ValidationError({"items": ["At least one item is required"]})

        priced = tuple(self.calculator.price(item) for item in items)

        subtotal = sum(item.original_subtotal for item in priced)
        seller_discount = sum(item.seller_discount_amount * item.quantity for item in priced)
        volume_discount = sum(item.volume_discount_amount * item.quantity for item in priced)
        subtotal_with_discounts = sum(item.line_subtotal for item in priced)

        sellers: dict = OrderedDict()
        for item in priced:
            figures = sellers.setdefault(item.seller_id, {"subtotal": 0.0, "savings": 0.0})
            figures["subtotal"] += item.line_subtotal
            figures["savings"] += item.savings

        coupon = self._resolve_coupon(coupon_code, user_id)
        coupon_discount = 0.0
        if coupon is not None and coupon.applied:
            coupon_discount = subtotal_with_discounts * clamp_percentage(coupon.percentage) / 100
        subtotal_after_coupon = subtotal_with_discounts - coupon_discount

        shipping_cost, free_shipping = self._shipping(subtotal_after_coupon)
        iva_amount = subtotal_after_coupon * self.config.tax_rate
        final_total = subtotal_after_coupon + iva_amount + shipping_cost

        return Totals(
            items=priced,
            subtotal=subtotal,
            seller_discount=seller_discount,
            volume_discount=volume_discount,
            subtotal_with_discounts=subtotal_with_discounts,
            coupon_discount=coupon_discount,
            subtotal_after_coupon=subtotal_after_coupon,
            tax_rate=self.config.tax_rate,
            iva_amount=iva_amount,
            shipping_cost=shipping_cost,
            free_shipping=free_shipping,
            free_shipping_threshold=self.config.free_shipping_threshold,
            final_total=final_total,
            coupon=coupon,
            sellers=dict(sellers),
        )
