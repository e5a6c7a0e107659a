"""Cart pricing and client-total validation against the live settings."""

from protean.exceptions import ValidationError

from ordering.configuration.setting import current_config
from ordering.discount.lookup import RepositoryDiscountCodeLookup
from pricing.config import PricingConfig
from pricing.items import CartItem
from pricing.reconciliation import reconcile
from pricing.totals import Totals, TotalsAggregator


def parse_items(raw_items, default_seller_id=None, require_seller: bool = False) -> list[CartItem]:
    """Turn request item dicts into ``CartItem``s, collecting every error."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError({"items": ["At least one item is required"]})

    items = []
    errors = {}
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            errors[f"items[{index}]"] = ["Item must be an object"]
            continue
        try:
            item = CartItem.from_dict(raw, default_seller_id=default_seller_id)
        except ValidationError as exc:
            for field_name, messages in exc.messages.items():
                errors[f"items[{index}].{field_name}"] = messages
            continue
        if require_seller and not item.seller_id:
            errors[f"items[{index}].seller_id"] = ["Seller id is required"]
            continue
        items.append(item)

    if errors:
        raise ValidationError(errors)
    return items


def price_cart(
    raw_items,
    coupon_code: str | None = None,
    user_id=None,
    config: PricingConfig | None = None,
) -> Totals:
    """Price ``raw_items`` with the current settings and persisted coupons."""
    config = config or current_config()
    items = parse_items(raw_items)
    return TotalsAggregator(config, RepositoryDiscountCodeLookup()).aggregate(
        items, coupon_code=coupon_code, user_id=user_id
    )


def validate_totals(raw_items, client_totals: dict, coupon_code: str | None = None, user_id=None) -> dict:
    """Recompute totals and compare them with what the client displayed."""
    config = current_config()
    totals = price_cart(raw_items, coupon_code=coupon_code, user_id=user_id, config=config)
    report = reconcile(totals, client_totals, tolerance=config.reconciliation_tolerance)
    return {"valid": report.matches, "reconciliation": report.to_dict(), "totals": totals.to_dict()}
