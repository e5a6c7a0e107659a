"""SellerOrder aggregate (CQRS): one seller's share of an Order.

Created at checkout, one per distinct seller, in the same unit of work as
the parent Order. Its total is the sum of the line subtotals of that
seller's items; coupon, tax and shipping stay on the parent Order.

State Machine:
    PENDING → PAID → PROCESSING → SHIPPED → DELIVERED
    PENDING → CANCELLED
    PAID/PROCESSING/SHIPPED/DELIVERED → REFUNDED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering
from ordering.order.events import SellerOrderStatusChanged
from pricing.money import round_money


class SellerOrderStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


_VALID_TRANSITIONS = {
    SellerOrderStatus.PENDING: {SellerOrderStatus.PAID, SellerOrderStatus.CANCELLED},
    SellerOrderStatus.PAID: {SellerOrderStatus.PROCESSING, SellerOrderStatus.REFUNDED},
    SellerOrderStatus.PROCESSING: {SellerOrderStatus.SHIPPED, SellerOrderStatus.REFUNDED},
    SellerOrderStatus.SHIPPED: {SellerOrderStatus.DELIVERED, SellerOrderStatus.REFUNDED},
    SellerOrderStatus.DELIVERED: {SellerOrderStatus.REFUNDED},
    SellerOrderStatus.CANCELLED: set(),  # Terminal
    SellerOrderStatus.REFUNDED: set(),  # Terminal
}

# Statuses whose totals count as seller sales
EARNING_STATUSES = {
    SellerOrderStatus.PAID,
    SellerOrderStatus.PROCESSING,
    SellerOrderStatus.SHIPPED,
    SellerOrderStatus.DELIVERED,
}


@ordering.aggregate
class SellerOrder:
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=60)
    seller_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of PricedItem dicts
    total = Float(required=True, min_value=0.0)
    original_total = Float(default=0.0)
    seller_discount_total = Float(default=0.0)
    volume_discount_total = Float(default=0.0)
    status = String(choices=SellerOrderStatus, default=SellerOrderStatus.PENDING.value)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, order_id, order_number, seller_id, priced_items):
        """Build the sub-order for ``seller_id`` from its ``PricedItem`` list."""
        now = datetime.now(UTC)
        return cls(
            order_id=order_id,
            order_number=f"{order_number}-S{seller_id}",
            seller_id=seller_id,
            items=json.dumps([item.to_dict() for item in priced_items]),
            total=round_money(sum(item.line_subtotal for item in priced_items)),
            original_total=round_money(sum(item.original_subtotal for item in priced_items)),
            seller_discount_total=round_money(
                sum(item.seller_discount_amount * item.quantity for item in priced_items)
            ),
            volume_discount_total=round_money(
                sum(item.volume_discount_amount * item.quantity for item in priced_items)
            ),
            status=SellerOrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

    @property
    def line_items(self) -> list[dict]:
        return json.loads(self.items) if self.items else []

    @property
    def counts_as_sale(self) -> bool:
        return SellerOrderStatus(self.status) in EARNING_STATUSES

    def can_transition_to(self, target_status: SellerOrderStatus) -> bool:
        return target_status in _VALID_TRANSITIONS.get(SellerOrderStatus(self.status), set())

    def transition_to(self, target_status: SellerOrderStatus) -> None:
        current = SellerOrderStatus(self.status)
        if not self.can_transition_to(target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now

        self.raise_(
            SellerOrderStatusChanged(
                seller_order_id=str(self.id),
                order_id=str(self.order_id),
                seller_id=str(self.seller_id),
                previous_status=current.value,
                new_status=target_status.value,
                changed_at=now,
            )
        )


@ordering.repository(part_of=SellerOrder)
class SellerOrderRepository:
    def for_order(self, order_id) -> list[SellerOrder]:
        return self._dao.query.filter(order_id=str(order_id)).all().items

    def for_seller(self, seller_id) -> list[SellerOrder]:
        return self._dao.query.filter(seller_id=str(seller_id)).all().items
