from protean.utils.globals import current_domain

from ordering.configuration.setting import current_config
from ordering.order.order import Order
from ordering.order.seller_order import SellerOrder
from pricing.config import PricingConfig
from pricing.shipping import ShippingDistribution, calculate_distribution


def distribute(order_id, config: PricingConfig | None = None) -> ShippingDistribution:
    """Split the shipping cost charged on ``order_id`` among its distinct sellers.

    Raises ``ObjectNotFoundError`` for an unknown order and
    ``ConfigurationError`` when the per-seller share would exceed the cost.
    """
    order = current_domain.repository_for(Order).get(order_id)
    seller_orders = current_domain.repository_for(SellerOrder).for_order(order.id)
    seller_count = len({str(so.seller_id) for so in seller_orders})
    return calculate_distribution(order.shipping_cost or 0.0, seller_count, config or current_config())
