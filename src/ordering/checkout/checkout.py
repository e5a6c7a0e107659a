"""Checkout: price the cart, record the order and delegate the charge.

``PlaceOrder`` runs in a single unit of work. The parent Order, one
SellerOrder per seller, the Payment and the discount code redemption
are committed together or not at all. Totals are always recomputed on
the server; client totals are only reconciled and reported.

Payment outcomes:
    completed  order, seller orders and payment marked paid right away
    pending    everything stays pending until the provider webhook arrives
    failed     order Failed, seller orders Cancelled, payment Failed
    unknown    provider error or timeout, everything stays pending
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.checkout.pricing import parse_items
from ordering.configuration.setting import current_config
from ordering.discount.discount_code import DiscountCode
from ordering.discount.lookup import RepositoryDiscountCodeLookup
from ordering.domain import logger, ordering
from ordering.exceptions import PaymentProviderError, PersistenceError
from ordering.order.order import Order
from ordering.order.seller_order import SellerOrder, SellerOrderStatus
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.port import PaymentRequest
from ordering.payment.payment import Payment, PaymentStatus
from pricing.reconciliation import reconcile
from pricing.totals import TotalsAggregator

_ADDRESS_FIELDS = ("street", "city", "state", "postal_code", "country", "recipient", "phone")
_REQUIRED_ADDRESS_FIELDS = ("street", "city", "country")


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


def _clean_address(raw, field_name: str) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError({field_name: ["Address is required"]})

    missing = [key for key in _REQUIRED_ADDRESS_FIELDS if not str(raw.get(key) or "").strip()]
    if missing:
        raise ValidationError({field_name: [f"Missing address fields: {', '.join(missing)}"]})

    return {key: str(raw[key]) for key in _ADDRESS_FIELDS if raw.get(key) not in (None, "")}


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of cart item dicts
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = String(required=True, max_length=50)
    payment_details = Text()  # JSON: provider-specific details
    seller_id = Identifier()  # Fallback for items without a seller
    discount_code = String(max_length=50)
    client_totals = Text()  # JSON: totals the client displayed


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        gateway = get_gateway(command.payment_method)
        items = parse_items(_load(command.items), default_seller_id=command.seller_id, require_seller=True)
        shipping_address = _clean_address(_load(command.shipping_address), "shipping_address")
        billing_address = (
            _clean_address(_load(command.billing_address), "billing_address")
            if command.billing_address
            else dict(shipping_address)
        )

        config = current_config()
        totals = TotalsAggregator(config, RepositoryDiscountCodeLookup()).aggregate(
            items, coupon_code=command.discount_code, user_id=command.customer_id
        )

        client_totals = _load(command.client_totals) if command.client_totals else None
        report = reconcile(totals, client_totals, tolerance=config.reconciliation_tolerance)
        if not report.matches:
            logger.warning(
                "Client totals differ from server totals",
                customer_id=command.customer_id,
                mismatches=[m.to_dict() for m in report.mismatches],
            )
            if config.block_on_price_mismatch:
                raise ValidationError({"totals": ["Prices changed since the cart was displayed, please review"]})

        breakdown = totals.to_dict()
        applied_code = totals.coupon.code if totals.coupon is not None and totals.coupon.applied else None

        order = Order.place(
            customer_id=command.customer_id,
            breakdown=breakdown,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=command.payment_method,
            seller_count=len(totals.sellers),
            discount_code=applied_code,
        )
        seller_orders = [
            SellerOrder.create(
                order_id=order.id,
                order_number=order.order_number,
                seller_id=seller_id,
                priced_items=totals.items_for_seller(seller_id),
            )
            for seller_id in totals.sellers
        ]

        payment = Payment.create(
            order_id=order.id,
            customer_id=command.customer_id,
            amount=order.total,
            payment_method=command.payment_method,
            gateway_name=gateway.name,
        )

        outcome = self._charge(gateway, order, seller_orders, payment, _load(command.payment_details) or {})

        if applied_code and outcome != "failed":
            discount_code = current_domain.repository_for(DiscountCode).by_code(applied_code)
            discount_code.redeem(command.customer_id, order.id)
            current_domain.repository_for(DiscountCode).add(discount_code)

        current_domain.repository_for(Order).add(order)
        seller_order_repo = current_domain.repository_for(SellerOrder)
        for seller_order in seller_orders:
            seller_order_repo.add(seller_order)
        current_domain.repository_for(Payment).add(payment)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total=order.total,
            sellers=len(seller_orders),
            payment_outcome=outcome,
        )

        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "status": order.status,
            "total": order.total,
            "seller_orders": [
                {
                    "seller_order_id": str(so.id),
                    "order_number": so.order_number,
                    "seller_id": str(so.seller_id),
                    "total": so.total,
                    "status": so.status,
                }
                for so in seller_orders
            ],
            "pricing": breakdown,
            "payment": {
                "payment_id": str(payment.id),
                "status": payment.status,
                "outcome": outcome,
                "transaction_id": payment.transaction_id,
                "redirect_url": payment.redirect_url,
                "failure_reason": payment.failure_reason,
            },
            "reconciliation": report.to_dict(),
        }

    def _charge(self, gateway, order, seller_orders, payment, details: dict) -> str:
        request = PaymentRequest(
            payment_id=str(payment.id),
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            amount=order.total,
            currency=payment.currency,
            payment_method=payment.payment_method,
            idempotency_key=payment.idempotency_key,
            details=details,
        )

        try:
            result = gateway.create_payment(request)
        except PaymentProviderError as exc:
            logger.warning(
                "Payment outcome unknown, order left pending",
                order_id=str(order.id),
                provider=exc.provider,
                error=str(exc),
            )
            return "unknown"

        if result.completed:
            transaction_id = result.transaction_id or str(payment.id)
            payment.transition_to(PaymentStatus.COMPLETED, transaction_id=transaction_id)
            order.mark_paid(transaction_id)
            for seller_order in seller_orders:
                seller_order.transition_to(SellerOrderStatus.PAID)
            return "completed"

        if result.failed:
            payment.transition_to(
                PaymentStatus.FAILED, transaction_id=result.transaction_id, reason=result.failure_reason
            )
            order.mark_failed(result.failure_reason)
            for seller_order in seller_orders:
                seller_order.transition_to(SellerOrderStatus.CANCELLED)
            return "failed"

        payment.record_submission(transaction_id=result.transaction_id, redirect_url=result.redirect_url)
        return "pending"


def checkout(
    user_id,
    payment_info: dict,
    shipping_address: dict,
    billing_address: dict | None,
    items: list[dict],
    seller_id=None,
    discount_code: str | None = None,
    client_totals: dict | None = None,
) -> dict:
    """Place an order and return its confirmation.

    Raises:
        ValidationError: malformed input, nothing was recorded.
        PersistenceError: the transaction was aborted, nothing was recorded.
    """
    payment_info = payment_info or {}
    command = PlaceOrder(
        customer_id=user_id,
        items=json.dumps(items),
        shipping_address=json.dumps(shipping_address),
        billing_address=json.dumps(billing_address) if billing_address else None,
        payment_method=payment_info.get("method") or payment_info.get("payment_method"),
        payment_details=json.dumps(payment_info.get("details") or {}),
        seller_id=seller_id,
        discount_code=discount_code,
        client_totals=json.dumps(client_totals) if client_totals else None,
    )

    try:
        return current_domain.process(command, asynchronous=False)
    except (ValidationError, ObjectNotFoundError):
        raise
    except Exception as exc:
        logger.exception("Checkout aborted", customer_id=str(user_id))
        raise PersistenceError("Checkout could not be completed; nothing was saved", cause=exc) from exc
