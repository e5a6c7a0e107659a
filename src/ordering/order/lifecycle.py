"""Order cancellation and seller fulfillment: commands and handlers."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order
from ordering.order.seller_order import SellerOrder, SellerOrderStatus
from ordering.payment.payment import Payment, PaymentStatus

_FULFILLMENT_STATUSES = {
    SellerOrderStatus.PROCESSING,
    SellerOrderStatus.SHIPPED,
    SellerOrderStatus.DELIVERED,
}


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@ordering.command(part_of="SellerOrder")
class AdvanceSellerOrder:
    seller_order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(reason=command.reason)

        seller_order_repo = current_domain.repository_for(SellerOrder)
        for seller_order in seller_order_repo.for_order(order.id):
            seller_order.transition_to(SellerOrderStatus.CANCELLED)
            seller_order_repo.add(seller_order)

        payment_repo = current_domain.repository_for(Payment)
        for payment in payment_repo.for_order(order.id):
            if payment.can_transition_to(PaymentStatus.CANCELLED):
                payment.transition_to(PaymentStatus.CANCELLED, reason=command.reason)
                payment_repo.add(payment)

        repo.add(order)
        logger.info("Order cancelled", order_id=str(order.id), reason=command.reason)


@ordering.command_handler(part_of=SellerOrder)
class SellerFulfillmentHandler:
    @handle(AdvanceSellerOrder)
    def advance_seller_order(self, command):
        try:
            target = SellerOrderStatus(command.status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown status: {command.status}"]}) from None
        if target not in _FULFILLMENT_STATUSES:
            raise ValidationError({"status": [f"{target.value} is not a fulfillment status"]})

        repo = current_domain.repository_for(SellerOrder)
        seller_order = repo.get(command.seller_order_id)
        seller_order.transition_to(target)
        repo.add(seller_order)
        return seller_order.status
