"""Volume discount tiers and the resolver that picks one for a quantity.

Tier configuration arrives as loosely shaped JSON (a string or an already
parsed list of dicts). It is normalized once, at the configuration
boundary, into an ascending tuple of ``VolumeDiscountTier``. A malformed
tier set normalizes to an empty tuple, which means "no volume discount".
"""

import json
import math
from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from pricing.money import clamp_percentage

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VolumeDiscountTier:
    """A quantity threshold and the percentage it unlocks."""

    min_quantity: int
    discount_percentage: float
    label: str

    @property
    def rate(self) -> float:
        """Discount as a 0.0-1.0 fraction."""
        return clamp_percentage(self.discount_percentage) / 100.0

    def to_dict(self) -> dict:
        return {
            "min_quantity": self.min_quantity,
            "discount_percentage": self.discount_percentage,
            "label": self.label,
        }


def _tier_from_entry(entry) -> VolumeDiscountTier:
    if not isinstance(entry, dict):
        raise TypeError(f"Tier entry must be an object, got {type(entry).__name__}")

    min_quantity = entry.get("min_quantity", entry.get("quantity"))
    discount = entry.get("discount_percentage", entry.get("discount", entry.get("percentage")))
    if min_quantity is None or discount is None:
        raise ValueError("Tier entry needs a quantity and a discount")
    if isinstance(min_quantity, bool) or not math.isfinite(float(min_quantity)):
        raise ValueError(f"Tier quantity must be a finite number, got {min_quantity!r}")
    if int(min_quantity) != float(min_quantity):
        raise ValueError(f"Tier quantity must be an integer, got {min_quantity!r}")

    min_quantity = int(min_quantity)
    if min_quantity < 1:
        raise ValueError(f"Tier quantity must be at least 1, got {min_quantity}")

    discount = float(discount)
    if not math.isfinite(discount):
        raise ValueError(f"Tier discount must be a finite number, got {discount!r}")

    label = entry.get("label") or f"{min_quantity}+ units"
    return VolumeDiscountTier(
        min_quantity=min_quantity,
        discount_percentage=clamp_percentage(discount),
        label=str(label),
    )


def normalize_tiers(raw) -> tuple[VolumeDiscountTier, ...]:
    """Normalize raw tier configuration into an ascending, de-duplicated tuple.

    Tiers sharing a minimum quantity collapse into one; the entry declared
    last wins. Any malformed entry rejects the whole set.
    """
    if raw is None:
        return ()

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Volume discount tiers are not valid JSON, ignoring", raw=raw[:200])
            return ()

    if not isinstance(raw, (list, tuple)):
        logger.warning("Volume discount tiers are not an array, ignoring", type=type(raw).__name__)
        return ()

    by_minimum: dict[int, VolumeDiscountTier] = {}
    for entry in raw:
        try:
            tier = _tier_from_entry(entry)
        except (TypeError, ValueError, OverflowError) as exc:
            logger.warning("Malformed volume discount tier, ignoring tier set", entry=entry, error=str(exc))
            return ()
        by_minimum[tier.min_quantity] = tier

    return tuple(sorted(by_minimum.values(), key=lambda t: t.min_quantity))


class VolumeDiscountResolver:
    """Resolve the volume discount for a product and quantity.

    Reads tiers from a ``PricingConfig`` snapshot: the product's own tier
    set when one is configured, otherwise the default set.
    """

    def __init__(self, config) -> None:
        self.config = config

    def tiers_for(self, product_id) -> tuple[VolumeDiscountTier, ...]:
        product_tiers = self.config.product_tiers.get(str(product_id))
        if product_tiers is not None:
            return product_tiers
        return self.config.default_tiers

    def tier_for(self, product_id, quantity: int) -> VolumeDiscountTier | None:
        """Return the highest tier whose minimum does not exceed ``quantity``."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"quantity": [f"Quantity must be a positive integer, got {quantity!r}"]})

        if not self.config.volume_discounts_enabled:
            return None

        applicable = None
        for tier in self.tiers_for(product_id):
            if tier.min_quantity > quantity:
                break
            applicable = tier
        return applicable

    def resolve(self, product_id, quantity: int) -> float:
        """Return the discount for ``quantity`` units as a 0.0-1.0 fraction."""
        tier = self.tier_for(product_id, quantity)
        return tier.rate if tier else 0.0
