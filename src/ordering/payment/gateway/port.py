"""Payment gateway port (abstract interface).

Checkout hands a ``PaymentRequest`` to the gateway registered for the
customer's payment method and gets back a ``PaymentResult``. Providers
that confirm synchronously answer ``completed`` or ``failed``; hosted
payment pages answer ``pending`` with a redirect url and confirm later
through a webhook.

Adapters raise ``PaymentProviderError`` (or ``PaymentProviderTimeout``)
when the outcome is unknown.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

PAYMENT_COMPLETED = "completed"
PAYMENT_PENDING = "pending"
PAYMENT_FAILED = "failed"


@dataclass(frozen=True)
class PaymentRequest:
    """Snapshot of the order handed to the provider."""

    payment_id: str
    order_id: str
    order_number: str
    customer_id: str
    amount: float
    currency: str
    payment_method: str
    idempotency_key: str
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentResult:
    """Result of a payment creation attempt."""

    status: str
    transaction_id: str | None = None
    redirect_url: str | None = None
    failure_reason: str | None = None
    raw: dict = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.status == PAYMENT_COMPLETED

    @property
    def pending(self) -> bool:
        return self.status == PAYMENT_PENDING

    @property
    def failed(self) -> bool:
        return self.status == PAYMENT_FAILED


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = "gateway"

    @abstractmethod
    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        """Create a payment with the provider for ``request.amount``."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the provider."""
        ...
