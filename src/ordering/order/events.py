"""Domain events for the Order and SellerOrder aggregates."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer checked out and a pending order was recorded."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    total = Float(required=True)
    seller_count = Integer(required=True)
    payment_method = String(required=True)
    discount_code = String()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = String(required=True)
    total = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    total = Float(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="SellerOrder")
class SellerOrderStatusChanged:
    """A seller sub-order moved to a new status."""

    __version__ = 1

    seller_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
