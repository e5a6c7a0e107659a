"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="Payment")
class PaymentCreated:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    payment_method = String(required=True)
    gateway_name = String()
    created_at = DateTime(required=True)


@ordering.event(part_of="Payment")
class PaymentStatusChanged:
    """The payment moved to a new status, from checkout or a provider webhook."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    transaction_id = String()
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    changed_at = DateTime(required=True)
