from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CouponResult:
    """Outcome of resolving a discount code.

    An unusable code is an ordinary result, not an error: ``valid`` is
    False and ``reason`` says why (``not_found``, ``already_used``,
    ``expired``, ``not_owner``, ``lookup_failed``).
    """

    code: str | None
    percentage: float = 0.0
    valid: bool = False
    reason: str | None = None

    @property
    def applied(self) -> bool:
        return self.valid and self.percentage > 0

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "percentage": self.percentage,
            "valid": self.valid,
            "applied": self.applied,
            "reason": self.reason,
        }


class DiscountCodeLookup(ABC):
    """Port resolving a coupon code for a given user."""

    @abstractmethod
    def resolve(self, code: str, user_id: str | None) -> CouponResult: ...


class NoDiscountCodes(DiscountCodeLookup):
    """Lookup with no codes at all. Every code resolves as ``not_found``."""

    def resolve(self, code: str, user_id: str | None) -> CouponResult:
        return CouponResult(code=code, valid=False, reason="not_found")


class StaticDiscountCodes(DiscountCodeLookup):
    """Fixed mapping of code to percentage, usable by anyone."""

    def __init__(self, codes: dict[str, float]) -> None:
        self.codes = {code.upper(): float(pct) for code, pct in codes.items()}

    def resolve(self, code: str, user_id: str | None) -> CouponResult:
        percentage = self.codes.get(code.upper())
        if percentage is None:
            return CouponResult(code=code, valid=False, reason="not_found")
        return CouponResult(code=code, percentage=percentage, valid=True)
