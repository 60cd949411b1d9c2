"""Money helpers for the storefront.

Prices, subtotals and discounts are ``Decimal`` amounts in whole currency
units (BDT). No fractional subdivision is used, so every computed amount is
quantized to 1 unit. Discounts round DOWN so a customer never receives more
than the coupon intends.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

# ─── constants ───────────────────────────────────────────────────────────────

MINOR_UNIT = Decimal("1")
ZERO = Decimal("0")


# ─── helpers ─────────────────────────────────────────────────────────────────


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce ``value`` to a Decimal quantized to the currency unit (half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def round_down(value: Decimal) -> Decimal:
    """Truncate ``value`` to the currency unit."""
    return value.quantize(MINOR_UNIT, rounding=ROUND_DOWN)


def format_money(value: Decimal, currency: str = "BDT") -> str:
    """Human readable amount, e.g. ``BDT 1,500``."""
    return f"{currency} {to_money(value):,}"
