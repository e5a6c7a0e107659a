"""Hosted payment page adapter (HTTP, HMAC-signed webhooks).

Creates the payment with a POST to the provider and returns ``pending``
with the provider's redirect (deeplink/QR) url; the outcome arrives later
as a webhook signed with HMAC-SHA256 over the raw body. The signature
header may carry a ``sha256=`` prefix.
"""

import hashlib
import hmac

import requests
import structlog

from ordering.exceptions import PaymentProviderError, PaymentProviderTimeout
from ordering.payment.gateway.port import (
    PAYMENT_COMPLETED,
    PAYMENT_FAILED,
    PAYMENT_PENDING,
    PaymentGateway,
    PaymentRequest,
    PaymentResult,
)

logger = structlog.get_logger(__name__)

_COMPLETED = {"SUCCESS", "SUCCESSFUL", "COMPLETED", "PAID", "APPROVED"}
_FAILED = {"FAILED", "ERROR", "DECLINED", "REJECTED"}


class HostedCheckoutGateway(PaymentGateway):
    name = "hosted"

    def __init__(self, base_url: str, api_key: str, webhook_secret: str, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout

    def create_payment(self, request: PaymentRequest) -> PaymentResult:
        payload = {
            "amount": request.amount,
            "currency": request.currency,
            "internalTransactionReference": request.order_number,
            "detail": f"Order {request.order_number}",
            "metadata": {"order_id": request.order_id, "payment_id": request.payment_id},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Idempotency-Key": request.idempotency_key,
        }

        try:
            response = requests.post(
                f"{self.base_url}/payments",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as exc:
            logger.warning("Payment provider timed out", order_id=request.order_id, timeout=self.timeout)
            raise PaymentProviderTimeout(f"Provider did not answer within {self.timeout}s", provider=self.name) from exc
        except (requests.RequestException, ValueError) as exc:
            logger.error("Payment provider request failed", order_id=request.order_id, error=str(exc))
            raise PaymentProviderError(str(exc), provider=self.name) from exc

        transaction_id = data.get("transactionId") or data.get("idTransaction") or data.get("id")
        status = str(data.get("status") or "").upper()

        if status in _COMPLETED:
            return PaymentResult(status=PAYMENT_COMPLETED, transaction_id=transaction_id, raw=data)
        if status in _FAILED:
            return PaymentResult(
                status=PAYMENT_FAILED,
                transaction_id=transaction_id,
                failure_reason=data.get("message") or status.lower(),
                raw=data,
            )
        if not transaction_id:
            raise PaymentProviderError("Provider response carries no transaction id", provider=self.name)

        return PaymentResult(
            status=PAYMENT_PENDING,
            transaction_id=str(transaction_id),
            redirect_url=data.get("deeplink") or data.get("redirectUrl") or data.get("checkoutUrl"),
            raw=data,
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        if not signature or not self.webhook_secret:
            return False
        if signature.startswith("sha256="):
            signature = signature[len("sha256=") :]

        expected = hmac.new(self.webhook_secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)
