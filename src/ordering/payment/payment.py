"""Payment aggregate (CQRS): one charge attempt against a provider.

State Machine:
    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED
    PENDING → CANCELLED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering
from ordering.payment.events import PaymentCreated, PaymentStatusChanged


class PaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),  # Terminal
    PaymentStatus.CANCELLED: set(),  # Terminal
    PaymentStatus.REFUNDED: set(),  # Terminal
}


@ordering.aggregate
class Payment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")
    payment_method = String(required=True, max_length=50)
    gateway_name = String(max_length=50)
    transaction_id = String(max_length=255)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    redirect_url = String(max_length=1000)
    failure_reason = String(max_length=500)
    idempotency_key = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, order_id, customer_id, amount, payment_method, gateway_name, currency="USD"):
        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            customer_id=customer_id,
            amount=amount,
            currency=currency,
            payment_method=payment_method,
            gateway_name=gateway_name,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        payment.idempotency_key = f"pay-{payment.id}"
        payment.raise_(
            PaymentCreated(
                payment_id=str(payment.id),
                order_id=str(order_id),
                amount=amount,
                payment_method=payment_method,
                gateway_name=gateway_name,
                created_at=now,
            )
        )
        return payment

    def record_submission(self, transaction_id=None, redirect_url=None):
        """Remember the provider's reference for a charge still awaiting confirmation."""
        self.transaction_id = transaction_id
        self.redirect_url = redirect_url
        self.updated_at = datetime.now(UTC)

    def can_transition_to(self, target_status: PaymentStatus) -> bool:
        return target_status in _VALID_TRANSITIONS.get(PaymentStatus(self.status), set())

    def transition_to(self, target_status: PaymentStatus, transaction_id=None, reason=None) -> None:
        current = PaymentStatus(self.status)
        if not self.can_transition_to(target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

        now = datetime.now(UTC)
        self.status = target_status.value
        if transaction_id:
            self.transaction_id = transaction_id
        if reason:
            self.failure_reason = reason
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                transaction_id=self.transaction_id,
                previous_status=current.value,
                new_status=target_status.value,
                reason=reason,
                changed_at=now,
            )
        )


@ordering.repository(part_of=Payment)
class PaymentRepository:
    def by_transaction_id(self, transaction_id) -> Payment | None:
        results = self._dao.query.filter(transaction_id=str(transaction_id)).all().items
        return results[0] if results else None

    def for_order(self, order_id) -> list[Payment]:
        return self._dao.query.filter(order_id=str(order_id)).all().items
