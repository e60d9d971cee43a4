"""Currency helpers for ZAR amounts.

Internal storage unit: cents (100 cents = R1).
API / quote unit: rands (float, e.g. 149.5 = R149.50).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENTS_PER_RAND: int = 100


def rand_to_cents(rand: float | Decimal | str) -> int:
    """Convert rands to cents, rounding half-up to the nearest cent."""
    value = Decimal(str(rand)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(value * CENTS_PER_RAND)


def cents_to_rand(cents: int) -> float:
    """Convert cents to rands. 100 cents = R1."""
    return cents / CENTS_PER_RAND


def percent_of(cents: int, percent: float) -> int:
    """Return ``percent`` of an amount in cents, rounded half-up."""
    value = Decimal(cents) * Decimal(str(percent)) / Decimal(100)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_rand(cents: int) -> str:
    """Render cents for humans, e.g. 15000 -> 'R150.00'."""
    return f"R{cents_to_rand(cents):,.2f}"
