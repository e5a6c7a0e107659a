"""Rounding helpers for monetary output."""

import math
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Round to cents, half-up. Only call this at the point of output."""
    return float(Decimal(repr(float(value))).quantize(_CENT, rounding=ROUND_HALF_UP))


def clamp_percentage(value: float) -> float:
    """Clamp a 0-100 percentage into range. NaN counts as 0."""
    value = float(value)
    if math.isnan(value):
        return 0.0
    return min(max(value, 0.0), 100.0)
