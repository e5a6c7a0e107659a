"""Order aggregate (CQRS): the customer-facing record of one checkout.

An Order carries the aggregate total and a frozen JSON snapshot of the
pricing breakdown computed at checkout. The snapshot is never recomputed:
discount configuration and product prices may change afterwards. After
creation only the status and payment fields change.

State Machine:
    PENDING → PAID → REFUNDED
    PENDING → FAILED
    PENDING → CANCELLED
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text, ValueObject

from ordering.domain import ordering
from ordering.order.events import (
    OrderCancelled,
    OrderPaid,
    OrderPaymentFailed,
    OrderPlaced,
    OrderRefunded,
)
from pricing.money import round_money


class OrderStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    CANCELLED = "Cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.FAILED, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.REFUNDED},
    OrderStatus.FAILED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


def generate_order_number() -> str:
    return f"ORD-{uuid4().hex[:8].upper()}"


@ordering.value_object(part_of="Order")
class Address:
    """A delivery or billing address captured at checkout time."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(required=True, max_length=100)
    recipient = String(max_length=255)
    phone = String(max_length=50)


@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=20)
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    subtotal = Float(default=0.0)
    discount_total = Float(default=0.0)
    tax_total = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total = Float(required=True, min_value=0.0)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    payment_method = String(max_length=50)
    payment_id = String(max_length=255)
    discount_code = String(max_length=50)
    pricing_breakdown = Text()  # JSON snapshot of Totals.to_dict()
    failure_reason = String(max_length=500)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        breakdown: dict,
        shipping_address: dict,
        billing_address: dict,
        payment_method: str,
        seller_count: int,
        discount_code: str | None = None,
    ):
        """Record a pending order from a priced checkout.

        Args:
            customer_id: The customer placing the order.
            breakdown: ``Totals.to_dict()`` of the server-side computation.
            shipping_address: Dict with street, city, state, postal_code, country.
            billing_address: Same shape as ``shipping_address``.
            payment_method: Gateway key, e.g. ``card`` or ``hosted``.
            seller_count: Number of seller sub-orders created alongside.
            discount_code: Coupon code, recorded only when it was applied.
        """
        now = datetime.now(UTC)
        order = cls(
            order_number=generate_order_number(),
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            subtotal=breakdown["subtotal"],
            discount_total=round_money(
                breakdown["seller_discount"] + breakdown["volume_discount"] + breakdown["coupon_discount"]
            ),
            tax_total=breakdown["iva_amount"],
            shipping_cost=breakdown["shipping_cost"],
            total=breakdown["final_total"],
            shipping_address=Address(**shipping_address),
            billing_address=Address(**billing_address),
            payment_method=payment_method,
            discount_code=discount_code,
            pricing_breakdown=json.dumps(breakdown),
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                total=order.total,
                seller_count=seller_count,
                payment_method=payment_method,
                discount_code=discount_code,
                placed_at=now,
            )
        )
        return order

    @property
    def breakdown(self) -> dict:
        return json.loads(self.pricing_breakdown) if self.pricing_breakdown else {}

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def can_transition_to(self, target_status: OrderStatus) -> bool:
        return target_status in _VALID_TRANSITIONS.get(OrderStatus(self.status), set())

    def _assert_can_transition(self, target_status: OrderStatus):
        """Validate that the current state allows transition to target."""
        if not self.can_transition_to(target_status):
            current = OrderStatus(self.status)
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def mark_paid(self, payment_id):
        self._assert_can_transition(OrderStatus.PAID)
        now = datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.payment_id = payment_id
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                payment_id=payment_id,
                total=self.total,
                paid_at=now,
            )
        )

    def mark_failed(self, reason=None):
        self._assert_can_transition(OrderStatus.FAILED)
        now = datetime.now(UTC)
        self.status = OrderStatus.FAILED.value
        self.failure_reason = reason
        self.updated_at = now

        self.raise_(OrderPaymentFailed(order_id=str(self.id), reason=reason, failed_at=now))

    def cancel(self, reason=None):
        """Cancel the order. Only pending orders can be cancelled."""
        self._assert_can_transition(OrderStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.updated_at = now

        self.raise_(OrderCancelled(order_id=str(self.id), reason=reason, cancelled_at=now))

    def refund(self):
        self._assert_can_transition(OrderStatus.REFUNDED)
        now = datetime.now(UTC)
        self.status = OrderStatus.REFUNDED.value
        self.updated_at = now

        self.raise_(OrderRefunded(order_id=str(self.id), total=self.total, refunded_at=now))
