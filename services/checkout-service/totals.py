"""Cart totals computation.

All amounts are integer cents. Tax is the only place a fractional value
appears; it is computed with Decimal and rounded half-up to a whole cent, so
0.5 of a cent always rounds away from zero (2450 * 0.13 = 318.5 -> 319).
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from config import TAX_RATE
from schemas import CartLine


@dataclass(frozen=True)
class Totals:
    """Derived cart totals in cents."""
    subtotal: int
    tax: int
    total: int


def line_total(line: CartLine) -> int:
    """Price of one line. Used for both cart totals and persisted order lines."""
    return line.unit_price * line.quantity


def round_half_up(value: Decimal) -> int:
    """Round a Decimal amount of cents to the nearest whole cent, halves up."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(lines: Iterable[CartLine], tax_rate: Decimal = TAX_RATE) -> Totals:
    """
    Compute subtotal, tax and total for a sequence of cart lines.

    Args:
        lines: Cart lines; not modified
        tax_rate: Decimal multiplier applied to the subtotal

    Returns:
        Totals in cents. An empty sequence yields all zeros.
    """
    if isinstance(tax_rate, float):
        raise TypeError("tax_rate must be a Decimal, not float")

    subtotal = sum((line_total(line) for line in lines), 0)
    tax = round_half_up(Decimal(subtotal) * Decimal(tax_rate))
    return Totals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def money(cents: int) -> str:
    """Format cents for display, e.g. 1000 -> "10.00"."""
    return str((Decimal(cents) / 100).quantize(Decimal("0.01")))
