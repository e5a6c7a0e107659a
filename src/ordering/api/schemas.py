"""Pydantic request/response schemas for the marketplace API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Business validation (quantities, prices,
addresses) happens in the domain so that every entry point shares it.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    product_id: str
    quantity: int
    base_price: float
    seller_discount_percentage: float = 0.0
    seller_id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class AddressSchema(BaseModel):
    street: str
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str
    recipient: str | None = None
    phone: str | None = None


class PaymentInfoSchema(BaseModel):
    method: str
    details: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
class PriceCartRequest(BaseModel):
    items: list[CartItemSchema]
    coupon_code: str | None = None
    user_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product_id": "prod-001",
                            "quantity": 5,
                            "base_price": 100.0,
                            "seller_discount_percentage": 10,
                            "seller_id": "seller-1",
                        }
                    ],
                    "coupon_code": None,
                }
            ]
        }
    }


class ValidateTotalsRequest(PriceCartRequest):
    client_totals: dict[str, float]


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    user_id: str
    items: list[CartItemSchema]
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment: PaymentInfoSchema
    seller_id: str | None = None
    discount_code: str | None = None
    client_totals: dict[str, float] | None = None


# ---------------------------------------------------------------------------
# Orders and sellers
# ---------------------------------------------------------------------------
class CancelOrderRequest(BaseModel):
    reason: str | None = None


class AdvanceSellerOrderRequest(BaseModel):
    status: str


class IssueDiscountCodeRequest(BaseModel):
    percentage: float = Field(ge=0, le=100)
    code: str | None = None
    owner_id: str | None = None
    expires_at: datetime | None = None


class SetConfigurationRequest(BaseModel):
    value: Any


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class DiscountCodeResponse(BaseModel):
    code: str


class WebhookAck(BaseModel):
    acknowledged: bool = True
    processed: bool
    error: str | None = None
    duplicate: bool | None = None
    transaction_id: str | None = None
    status: str | None = None
