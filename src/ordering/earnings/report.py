"""Seller earnings: sales, platform commission and shipping share.

Only sub-orders in a paid or later fulfillment status count as sales.
The shipping share of each parent order comes from its shipping
distribution; an order whose distribution cannot be computed is logged
and contributes nothing instead of failing the whole report.
"""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from ordering.configuration.setting import current_config
from ordering.domain import logger
from ordering.earnings.shipping_distribution import distribute
from ordering.order.seller_order import SellerOrder
from pricing.money import round_money


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _in_period(seller_order, start, end) -> bool:
    created_at = _aware(seller_order.created_at)
    if created_at is None:
        return start is None and end is None
    if start is not None and created_at < start:
        return False
    if end is not None and created_at > end:
        return False
    return True


def earnings_for_seller(seller_id, start: datetime | None = None, end: datetime | None = None) -> dict:
    config = current_config()
    start, end = _aware(start), _aware(end)

    seller_orders = [
        so
        for so in current_domain.repository_for(SellerOrder).for_seller(seller_id)
        if so.counts_as_sale and _in_period(so, start, end)
    ]

    sales = sum(so.total for so in seller_orders)
    commission = sales * config.commission_rate / 100

    shipping = 0.0
    for order_id in sorted({str(so.order_id) for so in seller_orders}):
        try:
            shipping += distribute(order_id, config).seller_share
        except Exception as exc:
            logger.warning(
                "Shipping distribution unavailable, counting zero",
                seller_id=str(seller_id),
                order_id=order_id,
                error=str(exc),
            )

    return {
        "seller_id": str(seller_id),
        "order_count": len(seller_orders),
        "sales": round_money(sales),
        "commission_rate": config.commission_rate,
        "commission": round_money(commission),
        "shipping_earnings": round_money(shipping),
        "net_earnings": round_money(sales - commission + shipping),
        "period": {
            "start": start.isoformat() if start else None,
            "end": end.isoformat() if end else None,
        },
    }
