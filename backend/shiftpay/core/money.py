from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
