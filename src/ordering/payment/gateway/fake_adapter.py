"""Configurable fake payment gateway for development and testing.

Simulates both kinds of provider without any external calls: one that
confirms the charge synchronously and a hosted payment page that answers
``pending`` with a redirect url. It can also be told to decline, to raise
a provider error, or to time out.
"""

from uuid import uuid4

from ordering.exceptions import PaymentProviderError, PaymentProviderTimeout
from ordering.payment.gateway.port import (
    PAYMENT_COMPLETED,
    PAYMENT_FAILED,
    PAYMENT_PENDING,
    PaymentGateway,
    PaymentRequest,
    PaymentResult,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self, confirms_synchronously: bool = True) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.confirms_synchronously = confirms_synchronously
        self.simulate_error: bool = False
        self.simulate_timeout: bool = False
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Card declined",
        confirms_synchronously: bool | None = None,
        simulate_error: bool = False,
        simulate_timeout: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        if confirms_synchronously is not None:
            self.confirms_synchronously = confirms_synchronously
        self.simulate_error = simulate_error
        self.simulate_timeout = simulate_timeout

    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        self.calls.append(
            {
                "method": "create_payment",
                "payment_id": request.payment_id,
                "order_id": request.order_id,
                "amount": request.amount,
                "currency": request.currency,
                "idempotency_key": request.idempotency_key,
            }
        )

        if self.simulate_timeout:
            raise PaymentProviderTimeout("Fake provider timed out", provider=self.name)
        if self.simulate_error:
            raise PaymentProviderError("Fake provider unavailable", provider=self.name)

        if not self.should_succeed:
            return PaymentResult(status=PAYMENT_FAILED, failure_reason=self.failure_reason)

        transaction_id = f"fake_txn_{uuid4().hex[:12]}"
        if self.confirms_synchronously:
            return PaymentResult(status=PAYMENT_COMPLETED, transaction_id=transaction_id)
        return PaymentResult(
            status=PAYMENT_PENDING,
            transaction_id=transaction_id,
            redirect_url=f"https://pay.example.test/checkout/{transaction_id}",
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
