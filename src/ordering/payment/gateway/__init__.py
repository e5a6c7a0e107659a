"""Payment gateway registry.

Gateways are registered per payment method and a method without one is
unsupported: ``get_gateway`` rejects it with a ``ValidationError``.
Outside production and staging the ``card`` method is served by a
synchronous ``FakeGateway`` until a real gateway is registered for it.
"""

import os

from protean.exceptions import ValidationError

from ordering.payment.gateway.fake_adapter import FakeGateway
from ordering.payment.gateway.port import PaymentGateway

DEVELOPMENT_METHOD = "card"

_gateways: dict[str, PaymentGateway] = {}


def fake_gateway_allowed() -> bool:
    env = (os.getenv("PROTEAN_ENV") or "development").lower()
    return env not in ("production", "staging")


def get_gateway(method: str | None) -> PaymentGateway:
    """Return the gateway registered for ``method``."""
    gateway = _gateways.get(method) if method else None
    if gateway is None and method == DEVELOPMENT_METHOD and fake_gateway_allowed():
        gateway = _gateways[method] = FakeGateway()
    if gateway is None:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {method}"]})
    return gateway


def set_gateway(gateway: PaymentGateway, method: str = DEVELOPMENT_METHOD) -> None:
    _gateways[method] = gateway


def reset_gateway() -> None:
    """Forget every registration."""
    _gateways.clear()
