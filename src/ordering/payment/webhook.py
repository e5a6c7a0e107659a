"""Payment provider webhooks: command, handler and the acknowledging entry point.

Providers retry on anything but a 2xx, so ``handle_payment_notification``
never raises: every outcome, including a bad signature or an unknown
transaction, is acknowledged with ``processed``/``error`` flags.

The payment is looked up by transaction id before anything else, and
the signature is verified by the gateway registered for that payment's
method. Nothing is written until the signature checks out.

Notifications for the same transaction are serialized with a striped
lock held around the whole unit of work. A notification whose target
status equals the payment's current status is acknowledged as a
duplicate and changes nothing.
"""

import json
import threading
import zlib

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order
from ordering.order.seller_order import SellerOrder, SellerOrderStatus
from ordering.payment.gateway import get_gateway
from ordering.payment.payment import Payment, PaymentStatus

# Provider status (upper-cased) to payment status. None means "still pending".
STATUS_MAP = {
    "SUCCESS": PaymentStatus.COMPLETED,
    "SUCCESSFUL": PaymentStatus.COMPLETED,
    "COMPLETED": PaymentStatus.COMPLETED,
    "PAID": PaymentStatus.COMPLETED,
    "APPROVED": PaymentStatus.COMPLETED,
    "FAILED": PaymentStatus.FAILED,
    "ERROR": PaymentStatus.FAILED,
    "DECLINED": PaymentStatus.FAILED,
    "REJECTED": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.CANCELLED,
    "CANCELED": PaymentStatus.CANCELLED,
    "REFUNDED": PaymentStatus.REFUNDED,
    "PENDING": None,
    "PROCESSING": None,
}

_TRANSACTION_ID_KEYS = ("idTransaction", "transaction_id", "transactionId", "payment_id", "idTransacionReference")

_SELLER_ORDER_TARGETS = {
    PaymentStatus.COMPLETED: SellerOrderStatus.PAID,
    PaymentStatus.FAILED: SellerOrderStatus.CANCELLED,
    PaymentStatus.CANCELLED: SellerOrderStatus.CANCELLED,
    PaymentStatus.REFUNDED: SellerOrderStatus.REFUNDED,
}

# Process-local. Running several workers needs a row or advisory lock from the
# database provider instead; the memory provider has neither.
_LOCK_STRIPES = 64
_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]


def transaction_lock(transaction_id: str) -> threading.Lock:
    return _locks[zlib.crc32(str(transaction_id).encode()) % _LOCK_STRIPES]


def extract_transaction_id(payload: dict) -> str | None:
    for source in (payload, payload.get("data") if isinstance(payload.get("data"), dict) else {}):
        for key in _TRANSACTION_ID_KEYS:
            if source.get(key):
                return str(source[key])
    return None


def extract_status(payload: dict) -> str | None:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    status = payload.get("status") or data.get("status")
    return str(status).strip().upper() if status else None


@ordering.command(part_of="Payment")
class ApplyPaymentNotification:
    transaction_id = String(required=True, max_length=255)
    target_status = String(required=True, max_length=20)
    provider_status = String(max_length=50)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Payment)
class PaymentNotificationHandler:
    @handle(ApplyPaymentNotification)
    def apply_notification(self, command):
        payment = current_domain.repository_for(Payment).by_transaction_id(command.transaction_id)
        if payment is None:
            raise ObjectNotFoundError(f"No payment with transaction id {command.transaction_id}")

        target = PaymentStatus(command.target_status)
        if payment.status == target.value:
            return {"duplicate": True, "payment_id": str(payment.id), "status": payment.status}

        order_repo = current_domain.repository_for(Order)
        seller_order_repo = current_domain.repository_for(SellerOrder)
        order = order_repo.get(payment.order_id)

        payment.transition_to(target, reason=command.reason)
        if target == PaymentStatus.COMPLETED:
            order.mark_paid(payment.transaction_id)
        elif target == PaymentStatus.FAILED:
            order.mark_failed(command.reason or command.provider_status)
        elif target == PaymentStatus.CANCELLED:
            order.cancel(command.reason or "Cancelled by payment provider")
        elif target == PaymentStatus.REFUNDED:
            order.refund()

        seller_target = _SELLER_ORDER_TARGETS[target]
        for seller_order in seller_order_repo.for_order(order.id):
            if seller_order.can_transition_to(seller_target):
                seller_order.transition_to(seller_target)
                seller_order_repo.add(seller_order)
            else:
                logger.warning(
                    "Seller order left unchanged by payment notification",
                    seller_order_id=str(seller_order.id),
                    status=seller_order.status,
                    target=seller_target.value,
                )

        current_domain.repository_for(Payment).add(payment)
        order_repo.add(order)

        return {
            "duplicate": False,
            "payment_id": str(payment.id),
            "order_id": str(order.id),
            "status": payment.status,
            "order_status": order.status,
        }


def _ack(processed: bool, error: str | None = None, **extra) -> dict:
    return {"acknowledged": True, "processed": processed, "error": error, **extra}


def handle_payment_notification(payload, signature: str | None) -> dict:
    """Parse, verify and apply a provider notification. Always acknowledges.

    The signature is checked by the gateway the payment was charged
    through, never one chosen by the sender.
    """
    raw = payload if isinstance(payload, str) else json.dumps(payload)

    try:
        data = json.loads(raw) if isinstance(payload, str) else payload
    except ValueError:
        return _ack(False, "invalid_payload")
    if not isinstance(data, dict):
        return _ack(False, "invalid_payload")

    transaction_id = extract_transaction_id(data)
    if not transaction_id:
        logger.warning("Payment webhook without transaction id", keys=sorted(data))
        return _ack(False, "missing_transaction_id")

    payment = current_domain.repository_for(Payment).by_transaction_id(transaction_id)
    if payment is None:
        logger.warning("Payment webhook for unknown transaction", transaction_id=transaction_id)
        return _ack(False, "payment_not_found", transaction_id=transaction_id)

    try:
        gateway = get_gateway(payment.payment_method)
    except ValidationError:
        logger.error(
            "No gateway registered for payment method",
            transaction_id=transaction_id,
            payment_method=payment.payment_method,
        )
        return _ack(False, "unsupported_payment_method", transaction_id=transaction_id)

    if not gateway.verify_webhook_signature(raw, signature or ""):
        logger.warning(
            "Rejected payment webhook with invalid signature", transaction_id=transaction_id, gateway=gateway.name
        )
        return _ack(False, "invalid_signature")

    provider_status = extract_status(data)
    if provider_status not in STATUS_MAP:
        logger.warning("Unknown provider status", transaction_id=transaction_id, status=provider_status)
        return _ack(False, "unknown_status", transaction_id=transaction_id)

    target = STATUS_MAP[provider_status]
    if target is None:
        return _ack(False, transaction_id=transaction_id, status="pending")

    reason = data.get("message") or data.get("reason")
    with transaction_lock(transaction_id):
        try:
            result = current_domain.process(
                ApplyPaymentNotification(
                    transaction_id=transaction_id,
                    target_status=target.value,
                    provider_status=provider_status,
                    reason=str(reason)[:500] if reason else None,
                ),
                asynchronous=False,
            )
        except ObjectNotFoundError:
            logger.warning("Payment webhook for unknown transaction", transaction_id=transaction_id)
            return _ack(False, "payment_not_found", transaction_id=transaction_id)
        except ValidationError as exc:
            logger.warning(
                "Payment webhook transition rejected",
                transaction_id=transaction_id,
                target=target.value,
                errors=exc.messages,
            )
            return _ack(False, "invalid_transition", transaction_id=transaction_id)
        except Exception:
            logger.exception("Payment webhook processing failed", transaction_id=transaction_id)
            return _ack(False, "processing_failed", transaction_id=transaction_id)

    if result["duplicate"]:
        logger.info("Duplicate payment webhook ignored", transaction_id=transaction_id, status=result["status"])
        return _ack(False, duplicate=True, transaction_id=transaction_id, status=result["status"])

    logger.info(
        "Payment webhook applied",
        transaction_id=transaction_id,
        order_id=result["order_id"],
        status=result["status"],
    )
    return _ack(True, duplicate=False, transaction_id=transaction_id, status=result["status"])
