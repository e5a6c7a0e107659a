"""Marketplace API package."""

from ordering.api.errors import install_error_handlers
from ordering.api.routes import (
    ALL_ROUTERS,
    checkout_router,
    configuration_router,
    discount_router,
    order_router,
    payment_router,
    pricing_router,
    seller_router,
)

__all__ = [
    "ALL_ROUTERS",
    "checkout_router",
    "configuration_router",
    "discount_router",
    "install_error_handlers",
    "order_router",
    "payment_router",
    "pricing_router",
    "seller_router",
]
