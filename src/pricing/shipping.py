"""Split an order's shipping cost between its sellers and the platform."""

from dataclasses import dataclass

from pricing.config import PricingConfig
from pricing.errors import ConfigurationError
from pricing.money import round_money


@dataclass(frozen=True)
class ShippingDistribution:
    total_cost: float
    seller_count: int
    seller_share: float
    platform_share: float
    enabled: bool = True

    @property
    def sellers_total(self) -> float:
        return round_money(self.seller_share * self.seller_count)

    def to_dict(self) -> dict:
        return {
            "total_cost": self.total_cost,
            "seller_count": self.seller_count,
            "seller_share": self.seller_share,
            "sellers_total": self.sellers_total,
            "platform_share": self.platform_share,
            "enabled": self.enabled,
        }


def calculate_distribution(total_cost: float, seller_count: int, config: PricingConfig) -> ShippingDistribution:
    """Compute the per-seller and platform shares of ``total_cost``.

    One seller gets ``single_seller_percentage`` of the cost. With several
    sellers each gets ``per_seller_percentage`` and the platform keeps the
    rest. A per-seller percentage that would hand out more than the full
    cost raises ``ConfigurationError``.
    """
    total_cost = max(float(total_cost or 0.0), 0.0)
    seller_count = max(int(seller_count or 0), 0)

    if not config.shipping_distribution_enabled:
        return ShippingDistribution(
            total_cost=round_money(total_cost),
            seller_count=seller_count,
            seller_share=0.0,
            platform_share=round_money(total_cost),
            enabled=False,
        )

    if total_cost <= 0 or seller_count == 0:
        return ShippingDistribution(
            total_cost=round_money(total_cost),
            seller_count=seller_count,
            seller_share=0.0,
            platform_share=round_money(total_cost),
        )

    if seller_count == 1:
        seller_share = total_cost * config.single_seller_percentage / 100
    else:
        if config.per_seller_percentage * seller_count > 100:
            raise ConfigurationError(
                {
                    "shipping_distribution.multiple_sellers_each": [
                        f"{config.per_seller_percentage}% for each of {seller_count} sellers "
                        "exceeds the full shipping cost"
                    ]
                }
            )
        seller_share = total_cost * config.per_seller_percentage / 100

    seller_share = round_money(seller_share)
    platform_share = round_money(total_cost - seller_share * seller_count)
    return ShippingDistribution(
        total_cost=round_money(total_cost),
        seller_count=seller_count,
        seller_share=seller_share,
        platform_share=platform_share,
    )
