"""Domain events for the DiscountCode aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="DiscountCode")
class DiscountCodeIssued:
    """A new discount code was issued."""

    __version__ = 1

    discount_code_id = Identifier(required=True)
    code = String(required=True)
    percentage = Float(required=True)
    owner_id = Identifier()


@ordering.event(part_of="DiscountCode")
class DiscountCodeRedeemed:
    """A discount code was used on an order and can no longer be applied."""

    __version__ = 1

    discount_code_id = Identifier(required=True)
    code = String(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    redeemed_at = DateTime(required=True)
