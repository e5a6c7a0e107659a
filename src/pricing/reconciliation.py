"""Compare client-submitted totals against the server's own computation."""

from dataclasses import dataclass

from pricing.errors import ReconciliationMismatch
from pricing.money import round_money
from pricing.totals import Totals

RECONCILED_FIELDS = ("final_total", "subtotal_with_discounts", "iva_amount", "shipping_cost")


@dataclass(frozen=True)
class Mismatch:
    field: str
    server: float
    client: float

    @property
    def difference(self) -> float:
        return round_money(self.client - self.server)

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "server": self.server,
            "client": self.client,
            "difference": self.difference,
        }


@dataclass(frozen=True)
class ReconciliationReport:
    tolerance: float
    compared: tuple[str, ...] = ()
    mismatches: tuple[Mismatch, ...] = ()

    @property
    def matches(self) -> bool:
        return not self.mismatches

    def raise_for_mismatch(self) -> None:
        if self.mismatches:
            raise ReconciliationMismatch(self)

    def to_dict(self) -> dict:
        return {
            "matches": self.matches,
            "tolerance": self.tolerance,
            "compared": list(self.compared),
            "mismatches": [m.to_dict() for m in self.mismatches],
        }


def reconcile(server_totals: Totals, client_totals: dict | None, tolerance: float = 0.01) -> ReconciliationReport:
    """Check the fields the client submitted against the server totals.

    Fields the client left out, or sent as non-numbers, are not compared.
    Values are compared after rounding to cents.
    """
    compared = []
    mismatches = []
    server = server_totals.to_dict()

    for name in RECONCILED_FIELDS:
        raw = (client_totals or {}).get(name)
        if raw is None or isinstance(raw, bool):
            continue
        try:
            client_value = round_money(float(raw))
        except (TypeError, ValueError):
            continue

        compared.append(name)
        if abs(client_value - server[name]) > tolerance + 1e-9:
            mismatches.append(Mismatch(field=name, server=server[name], client=client_value))

    return ReconciliationReport(tolerance=tolerance, compared=tuple(compared), mismatches=tuple(mismatches))
