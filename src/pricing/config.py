"""Pricing configuration: the provider port and the per-call snapshot.

Discount tiers, tax rate, shipping rules and commission are editable at
runtime, so every pricing run loads a ``PricingConfig`` snapshot up front
and passes it down explicitly. Nothing in the pipeline reads ambient
configuration, which keeps runs reproducible and easy to test.
"""

import json
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import structlog

from pricing.tiers import VolumeDiscountTier, normalize_tiers

logger = structlog.get_logger(__name__)

DEFAULT_TIERS = (
    {"quantity": 5, "discount": 5, "label": "Descuento 5+"},
    {"quantity": 6, "discount": 10, "label": "Descuento 6+"},
    {"quantity": 19, "discount": 15, "label": "Descuento 19+"},
)

DEFAULTS = {
    "volume_discounts.enabled": True,
    "volume_discounts.default_tiers": list(DEFAULT_TIERS),
    "volume_discounts.product_tiers": {},
    "tax.rate": 0.15,
    "shipping.enabled": True,
    "shipping.default_cost": 5.00,
    "shipping.free_threshold": 50.00,
    "shipping_distribution.enabled": True,
    "shipping_distribution.single_seller_max": 80.0,
    "shipping_distribution.multiple_sellers_each": 40.0,
    "platform.commission_rate": 10.0,
    "pricing.reconciliation_tolerance": 0.01,
    "checkout.block_on_price_mismatch": False,
    "payments.timeout_seconds": 30.0,
}


class ConfigurationProvider(ABC):
    """Key/value configuration source."""

    @abstractmethod
    def get(self, key: str, default=None):
        """Return the value stored under ``key``, or ``default``."""
        ...


class InMemoryConfiguration(ConfigurationProvider):
    """Dictionary-backed provider, seeded with ``DEFAULTS``."""

    def __init__(self, values: dict | None = None) -> None:
        self.values = {**DEFAULTS, **(values or {})}

    def get(self, key: str, default=None):
        return self.values.get(key, default)

    def set(self, key: str, value) -> None:
        self.values[key] = value


def _as_bool(value, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "on", "false", "0", "no", "off"):
        return value.strip().lower() in ("true", "1", "yes", "on")
    if isinstance(value, (int, float)):
        return bool(value)
    logger.warning("Invalid boolean configuration, using default", key=key, value=value)
    return DEFAULTS[key]


def _as_number(value, key: str, minimum: float = 0.0, maximum: float | None = None) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid numeric configuration, using default", key=key, value=value)
        return float(DEFAULTS[key])

    if not math.isfinite(number) or number < minimum or (maximum is not None and number > maximum):
        logger.warning(
            "Numeric configuration out of range, using default",
            key=key,
            value=number,
            minimum=minimum,
            maximum=maximum,
        )
        return float(DEFAULTS[key])
    return number


def _product_tiers(raw) -> dict[str, tuple[VolumeDiscountTier, ...]]:
    if raw is None:
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Product volume tiers are not valid JSON, ignoring")
            return {}
    if not isinstance(raw, dict):
        logger.warning("Product volume tiers must be an object keyed by product id, ignoring")
        return {}
    return {str(product_id): normalize_tiers(tiers) for product_id, tiers in raw.items()}


@dataclass(frozen=True)
class PricingConfig:
    """Immutable snapshot of every setting a pricing or checkout run needs."""

    volume_discounts_enabled: bool = True
    default_tiers: tuple[VolumeDiscountTier, ...] = field(default_factory=lambda: normalize_tiers(list(DEFAULT_TIERS)))
    product_tiers: dict = field(default_factory=dict)
    tax_rate: float = 0.15
    shipping_enabled: bool = True
    shipping_cost: float = 5.00
    free_shipping_threshold: float = 50.00
    shipping_distribution_enabled: bool = True
    single_seller_percentage: float = 80.0
    per_seller_percentage: float = 40.0
    commission_rate: float = 10.0
    reconciliation_tolerance: float = 0.01
    block_on_price_mismatch: bool = False
    payment_timeout_seconds: float = 30.0

    @classmethod
    def load(cls, provider: ConfigurationProvider) -> "PricingConfig":
        """Read a snapshot from ``provider``, falling back to defaults on bad values."""

        def get(key):
            return provider.get(key, DEFAULTS[key])

        return cls(
            volume_discounts_enabled=_as_bool(get("volume_discounts.enabled"), "volume_discounts.enabled"),
            default_tiers=normalize_tiers(get("volume_discounts.default_tiers")),
            product_tiers=_product_tiers(get("volume_discounts.product_tiers")),
            tax_rate=_as_number(get("tax.rate"), "tax.rate", maximum=1.0),
            shipping_enabled=_as_bool(get("shipping.enabled"), "shipping.enabled"),
            shipping_cost=_as_number(get("shipping.default_cost"), "shipping.default_cost"),
            free_shipping_threshold=_as_number(get("shipping.free_threshold"), "shipping.free_threshold"),
            shipping_distribution_enabled=_as_bool(
                get("shipping_distribution.enabled"), "shipping_distribution.enabled"
            ),
            single_seller_percentage=_as_number(
                get("shipping_distribution.single_seller_max"),
                "shipping_distribution.single_seller_max",
                maximum=100.0,
            ),
            per_seller_percentage=_as_number(
                get("shipping_distribution.multiple_sellers_each"),
                "shipping_distribution.multiple_sellers_each",
                maximum=100.0,
            ),
            commission_rate=_as_number(get("platform.commission_rate"), "platform.commission_rate", maximum=100.0),
            reconciliation_tolerance=_as_number(
                get("pricing.reconciliation_tolerance"), "pricing.reconciliation_tolerance"
            ),
            block_on_price_mismatch=_as_bool(
                get("checkout.block_on_price_mismatch"), "checkout.block_on_price_mismatch"
            ),
            payment_timeout_seconds=_as_number(
                get("payments.timeout_seconds"), "payments.timeout_seconds", minimum=0.1
            ),
        )
