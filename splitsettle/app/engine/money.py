"""
engine/money.py — Conversions between Decimal amounts and integer minor units.

All engine arithmetic happens on integers (cents). Decimal values with exactly
two decimal places are used only at the public boundary. This makes every
zero-sum guarantee exact instead of epsilon-approximate.

Float is never accepted: a float cannot represent most cent values exactly,
so a float reaching the engine is a caller bug.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Percentages are carried as basis points (hundredths of a percent).
BASIS_POINTS_PER_WHOLE = 10_000


def as_decimal(value: Decimal | int | str) -> Decimal:
    """Coerces int/str to Decimal. Raises TypeError for float, ValueError for junk."""
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(
            f"Monetary values must be Decimal, int or str, not {type(value).__name__}."
        )
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"{value!r} is not a valid decimal number.") from None
    if not result.is_finite():
        raise ValueError(f"{value!r} is not a finite number.")
    return result


def to_minor(value: Decimal | int | str) -> int:
    """
    Converts a major-unit amount to integer minor units.

    Decimal("12.34") → 1234. Raises ValueError when the value has sub-cent
    digits (Decimal("0.001")); such values are rejected, never rounded.
    """
    amount = as_decimal(value)
    scaled = amount.scaleb(2)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{amount} has more than 2 decimal places.")
    return int(scaled)


def round_to_minor(value: Decimal | int | str) -> int:
    """
    Like to_minor(), but rounds sub-cent digits to the nearest cent (half even)
    instead of rejecting them. Decimal("0.005") → 0, Decimal("0.015") → 2.
    """
    amount = as_decimal(value)
    return int(amount.quantize(CENT, rounding=ROUND_HALF_EVEN).scaleb(2))


def from_minor(units: int) -> Decimal:
    """Converts integer minor units to a two-place Decimal. 1234 → Decimal("12.34")."""
    return Decimal(units).scaleb(-2).quantize(CENT)


def to_basis_points(value: Decimal | int | str) -> int:
    """Converts a percentage to basis points. Decimal("12.5") → 1250."""
    percent = as_decimal(value)
    scaled = percent.scaleb(2)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{percent} has more than 2 decimal places.")
    return int(scaled)
