"""Conversions between catalogue prices and processor amounts.

Catalogue prices are ``Decimal`` in major units (pesos); the processor works
in integer minor units (centavos).
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """``round(amount * 100)`` with halves rounded away from zero."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / 100).quantize(CENT)
