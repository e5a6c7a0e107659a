"""FastAPI routes for pricing, checkout, orders, sellers and payments.

Thin adapters that translate HTTP requests into domain calls.
Domain errors become HTTP statuses through ``install_error_handlers``.
"""

import json
from datetime import datetime

from fastapi import APIRouter, Header, Request
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AdvanceSellerOrderRequest,
    CancelOrderRequest,
    CheckoutRequest,
    DiscountCodeResponse,
    IssueDiscountCodeRequest,
    PriceCartRequest,
    SetConfigurationRequest,
    StatusResponse,
    ValidateTotalsRequest,
    WebhookAck,
)
from ordering.checkout.checkout import checkout
from ordering.checkout.pricing import price_cart, validate_totals
from ordering.configuration.setting import SetConfiguration
from ordering.discount.issuance import IssueDiscountCode
from ordering.earnings.report import earnings_for_seller
from ordering.earnings.shipping_distribution import distribute
from ordering.order.lifecycle import AdvanceSellerOrder, CancelOrder
from ordering.order.order import Order
from ordering.order.seller_order import SellerOrder
from ordering.payment.payment import Payment
from ordering.payment.webhook import handle_payment_notification


def _items(body) -> list[dict]:
    return [item.model_dump() for item in body.items]


def _order_view(order: Order) -> dict:
    seller_orders = current_domain.repository_for(SellerOrder).for_order(order.id)
    payments = current_domain.repository_for(Payment).for_order(order.id)
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "total": order.total,
        "shipping_cost": order.shipping_cost,
        "payment_method": order.payment_method,
        "payment_id": order.payment_id,
        "discount_code": order.discount_code,
        "pricing": order.breakdown,
        "seller_orders": [
            {
                "seller_order_id": str(so.id),
                "order_number": so.order_number,
                "seller_id": str(so.seller_id),
                "total": so.total,
                "status": so.status,
                "items": so.line_items,
            }
            for so in seller_orders
        ],
        "payments": [
            {
                "payment_id": str(p.id),
                "status": p.status,
                "amount": p.amount,
                "transaction_id": p.transaction_id,
                "redirect_url": p.redirect_url,
            }
            for p in payments
        ],
        "created_at": str(order.created_at) if order.created_at else None,
    }


# ---------------------------------------------------------------------------
# Pricing Router
# ---------------------------------------------------------------------------
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])


@pricing_router.post("/cart")
async def price_cart_view(body: PriceCartRequest) -> dict:
    """Price a cart with the current discount, tax and shipping settings."""
    totals = price_cart(_items(body), coupon_code=body.coupon_code, user_id=body.user_id)
    return totals.to_dict()


@pricing_router.post("/validate")
async def validate_cart_totals(body: ValidateTotalsRequest) -> dict:
    """Compare the totals a client displayed against a server recomputation."""
    return validate_totals(
        _items(body),
        body.client_totals,
        coupon_code=body.coupon_code,
        user_id=body.user_id,
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", status_code=201)
def place_order(body: CheckoutRequest) -> dict:
    """Runs in the threadpool: the gateway call blocks."""
    return checkout(
        user_id=body.user_id,
        payment_info=body.payment.model_dump(),
        shipping_address=body.shipping_address.model_dump(),
        billing_address=body.billing_address.model_dump() if body.billing_address else None,
        items=_items(body),
        seller_id=body.seller_id,
        discount_code=body.discount_code,
        client_totals=body.client_totals,
    )


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    x_signature: str = Header(default=""),
) -> WebhookAck:
    """Apply a provider notification. Always answers 200 so providers do not retry."""
    payload = (await request.body()).decode("utf-8", errors="replace")
    return WebhookAck(**handle_payment_notification(payload, x_signature))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    return _order_view(current_domain.repository_for(Order).get(order_id))


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


@order_router.get("/{order_id}/shipping-distribution")
async def get_shipping_distribution(order_id: str) -> dict:
    return distribute(order_id).to_dict()


# ---------------------------------------------------------------------------
# Seller Router
# ---------------------------------------------------------------------------
seller_router = APIRouter(tags=["sellers"])


@seller_router.put("/seller-orders/{seller_order_id}/status", response_model=StatusResponse)
async def advance_seller_order(seller_order_id: str, body: AdvanceSellerOrderRequest) -> StatusResponse:
    command = AdvanceSellerOrder(seller_order_id=seller_order_id, status=body.status)
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=status)


@seller_router.get("/sellers/{seller_id}/earnings")
async def get_seller_earnings(seller_id: str, start: datetime | None = None, end: datetime | None = None) -> dict:
    return earnings_for_seller(seller_id, start=start, end=end)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------
discount_router = APIRouter(prefix="/discount-codes", tags=["discount-codes"])


@discount_router.post("", status_code=201, response_model=DiscountCodeResponse)
async def issue_discount_code(body: IssueDiscountCodeRequest) -> DiscountCodeResponse:
    command = IssueDiscountCode(
        code=body.code,
        percentage=body.percentage,
        owner_id=body.owner_id,
        expires_at=body.expires_at,
    )
    code = current_domain.process(command, asynchronous=False)
    return DiscountCodeResponse(code=code)


configuration_router = APIRouter(prefix="/configuration", tags=["configuration"])


@configuration_router.put("/{key}", response_model=StatusResponse)
async def set_configuration(key: str, body: SetConfigurationRequest) -> StatusResponse:
    command = SetConfiguration(key=key, value=json.dumps(body.value))
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="updated")


ALL_ROUTERS = (
    pricing_router,
    checkout_router,
    payment_router,
    order_router,
    seller_router,
    discount_router,
    configuration_router,
)
