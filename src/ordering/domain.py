"""Ordering bounded context: checkout, multi-seller orders and payments.

Prices carts with the ``pricing`` package, splits each order into one
sub-order per seller, delegates the charge to a payment gateway and
applies provider webhooks to the resulting records.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
