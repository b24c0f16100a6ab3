"""Rental price calculation.

total = day_rate * billable days, rounded to the currency's minor unit.
Only the total is rounded; rates keep whatever precision they were given.
Pure and deterministic: a price recomputed later for an audit or dispute
must equal the one charged.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from rentaly.domain.intervals import Interval, duration_in_days

CENTS = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric value to a finite Decimal without rounding.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion.

    Raises:
        ValueError: bools, None, non-numeric strings, NaN or infinity.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid amount: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"invalid amount: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric value to a 2-place Decimal (ROUND_HALF_UP)."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_price(day_rate: Decimal | int | float | str, interval: Interval) -> Decimal:
    """Return the total price for renting at `day_rate` over `interval`."""
    total = to_decimal(day_rate) * duration_in_days(interval)
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)
