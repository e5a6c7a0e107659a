"""Tests for the Payment aggregate."""

import pytest
from ordering.payment.events import PaymentStatusChanged
from ordering.payment.payment import Payment, PaymentStatus
from protean.exceptions import ValidationError


def _payment():
    return Payment.create(
        order_id="order-1",
        customer_id="cust-001",
        amount=57.5,
        payment_method="card",
        gateway_name="fake",
    )


class TestPayment:
    def test_create(self):
        payment = _payment()
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.idempotency_key == f"pay-{payment.id}"

    def test_record_submission_keeps_pending(self):
        payment = _payment()
        payment.record_submission(transaction_id="txn-1", redirect_url="https://pay.example.test/txn-1")
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.transaction_id == "txn-1"

    def test_complete(self):
        payment = _payment()
        payment.transition_to(PaymentStatus.COMPLETED, transaction_id="txn-1")
        assert payment.status == PaymentStatus.COMPLETED.value
        event = payment._events[-1]
        assert isinstance(event, PaymentStatusChanged)
        assert event.previous_status == "Pending"
        assert event.new_status == "Completed"

    def test_fail_records_reason(self):
        payment = _payment()
        payment.transition_to(PaymentStatus.FAILED, reason="Card declined")
        assert payment.failure_reason == "Card declined"

    def test_refund_requires_completion(self):
        with pytest.raises(ValidationError):
            _payment().transition_to(PaymentStatus.REFUNDED)

    def test_failed_cannot_complete(self):
        payment = _payment()
        payment.transition_to(PaymentStatus.FAILED)
        assert not payment.can_transition_to(PaymentStatus.COMPLETED)
