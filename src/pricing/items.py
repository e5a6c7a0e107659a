"""Per-item pricing: seller discount first, then the volume discount.

The order is fixed. The seller discount comes off the base price and the
volume discount comes off the seller-discounted price, so each discount's
per-unit amount is attributed accordingly in ``PricedItem``.
"""

import math
from dataclasses import dataclass, field

from protean.exceptions import ValidationError

from pricing.money import clamp_percentage, round_money
from pricing.tiers import VolumeDiscountResolver


@dataclass(frozen=True)
class CartItem:
    """A product line as submitted for pricing."""

    product_id: str
    quantity: int
    base_price: float
    seller_discount_percentage: float = 0.0
    seller_id: str | None = None
    attributes: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict, default_seller_id=None) -> "CartItem":
        """Build a ``CartItem`` from request data, validating its shape."""
        errors = {}

        product_id = data.get("product_id") or data.get("productId")
        if not product_id:
            errors["product_id"] = ["Product id is required"]

        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            errors["quantity"] = [f"Quantity must be a positive integer, got {quantity!r}"]

        base_price = data.get("base_price", data.get("price"))
        try:
            base_price = float(base_price)
            if not math.isfinite(base_price):
                errors["base_price"] = [f"Base price must be a finite number, got {base_price!r}"]
            elif base_price < 0:
                errors["base_price"] = ["Base price cannot be negative"]
        except (TypeError, ValueError):
            errors["base_price"] = [f"Base price must be a number, got {base_price!r}"]

        seller_discount = data.get("seller_discount_percentage", data.get("discount_percentage", 0.0)) or 0.0
        try:
            seller_discount = float(seller_discount)
            if not math.isfinite(seller_discount):
                errors["seller_discount_percentage"] = ["Seller discount must be a finite number"]
        except (TypeError, ValueError):
            errors["seller_discount_percentage"] = ["Seller discount must be a number"]

        attributes = data.get("attributes") or {}
        if not isinstance(attributes, dict):
            errors["attributes"] = ["Attributes must be an object"]

        if errors:
            raise ValidationError(errors)

        seller_id = data.get("seller_id") or default_seller_id
        return cls(
            product_id=str(product_id),
            quantity=quantity,
            base_price=base_price,
            seller_discount_percentage=seller_discount,
            seller_id=str(seller_id) if seller_id is not None else None,
            attributes=attributes,
        )


@dataclass(frozen=True)
class PricedItem:
    """A ``CartItem`` with every step of its price computed.

    Amounts are kept at full precision; ``to_dict`` rounds for output.
    """

    product_id: str
    seller_id: str | None
    quantity: int
    base_price: float
    seller_discount_percentage: float
    price_after_seller: float
    volume_discount_percentage: float
    final_unit_price: float
    tier_label: str | None = None
    attributes: dict = field(default_factory=dict)

    @property
    def seller_discount_amount(self) -> float:
        """Per-unit amount taken off by the seller discount."""
        return self.base_price - self.price_after_seller

    @property
    def volume_discount_amount(self) -> float:
        """Per-unit amount taken off by the volume discount."""
        return self.price_after_seller - self.final_unit_price

    @property
    def unit_savings(self) -> float:
        return self.base_price - self.final_unit_price

    @property
    def savings(self) -> float:
        return self.unit_savings * self.quantity

    @property
    def original_subtotal(self) -> float:
        return self.base_price * self.quantity

    @property
    def line_subtotal(self) -> float:
        return self.final_unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "seller_id": self.seller_id,
            "quantity": self.quantity,
            "base_price": round_money(self.base_price),
            "seller_discount_percentage": self.seller_discount_percentage,
            "price_after_seller": round_money(self.price_after_seller),
            "volume_discount_percentage": round(self.volume_discount_percentage * 100, 4),
            "final_unit_price": round_money(self.final_unit_price),
            "seller_discount_amount": round_money(self.seller_discount_amount),
            "volume_discount_amount": round_money(self.volume_discount_amount),
            "unit_savings": round_money(self.unit_savings),
            "savings": round_money(self.savings),
            "line_subtotal": round_money(self.line_subtotal),
            "tier_label": self.tier_label,
            "attributes": self.attributes,
        }


class ItemPriceCalculator:
    """Price a single cart item against a volume discount resolver."""

    def __init__(self, resolver: VolumeDiscountResolver) -> None:
        self.resolver = resolver

    def price(self, item: CartItem) -> PricedItem:
        seller_pct = clamp_percentage(item.seller_discount_percentage)
        price_after_seller = item.base_price * (1 - seller_pct / 100)

        tier = self.resolver.tier_for(item.product_id, item.quantity)
        volume_rate = tier.rate if tier else 0.0
        final_unit_price = max(price_after_seller * (1 - volume_rate), 0.0)

        return PricedItem(
            product_id=item.product_id,
            seller_id=item.seller_id,
            quantity=item.quantity,
            base_price=item.base_price,
            seller_discount_percentage=seller_pct,
            price_after_seller=price_after_seller,
            volume_discount_percentage=volume_rate,
            final_unit_price=final_unit_price,
            tier_label=tier.label if tier else None,
            attributes=dict(item.attributes),
        )
