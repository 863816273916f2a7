# Overview: Decimal money helpers shared by every calculator.

"""
Money & Percentage Utilities

All amounts are Decimal in whole currency units (rupees), never floats.
Inputs from JSON (int, float, str) are converted through str() so that
0.1 stays 0.1 instead of 0.1000000000000000055511151231257827.

Rounding policy: ROUND_HALF_UP everywhere (2.5 -> 3, -2.5 -> -3).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Mapping

from .errors import ValidationError


ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value, field: str = "amount") -> Decimal:
    """
    Strict conversion to Decimal.

    - None -> 0
    - bool is rejected (True is not an amount)
    - NaN / Infinity are rejected
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        text = str(value).strip()
        if not text:
            raise ValidationError(f"{field} must be a number")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def round_half_up(value, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def round_money(value) -> Decimal:
    return round_half_up(value, 2)


def round_to_step(value, step) -> Decimal:
    """Round to the nearest multiple of step (e.g. 10 -> 12345 becomes 12350)."""
    step = to_decimal(step, "step")
    if step <= 0:
        raise ValidationError("step must be positive")
    units = (to_decimal(value) / step).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return units * step


def percentage_of(amount, percentage) -> Decimal:
    return to_decimal(amount) * to_decimal(percentage, "percentage") / HUNDRED


def ratio_percentage(part, whole, places: int = 2) -> Decimal:
    """part / whole * 100, or 0 when whole is 0."""
    whole = to_decimal(whole)
    if whole == 0:
        return ZERO
    return round_half_up(to_decimal(part) / whole * HUNDRED, places)


def sum_amounts(values: Iterable) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def split_by_percentages(amount, percentages: Mapping[str, object]) -> dict[str, Decimal]:
    """
    Split amount into cent-exact shares.

    Every share is rounded to the cent; whatever rounding leaves over goes to
    the last key so the shares always add back to the rounded total of the
    percentages applied.
    """
    keys = list(percentages.keys())
    if not keys:
        return {}
    total_pct = sum_amounts(percentages.values())
    if total_pct > HUNDRED:
        raise ValidationError("Percentages cannot exceed 100 in total")

    target = round_money(percentage_of(amount, total_pct))
    shares: dict[str, Decimal] = {}
    allocated = ZERO
    for key in keys[:-1]:
        share = round_money(percentage_of(amount, percentages[key]))
        shares[key] = share
        allocated += share
    shares[keys[-1]] = target - allocated
    return shares


def require_non_negative(value, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def require_positive(value, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be positive")
    return amount


def require_percentage(value, field: str, *, minimum=ZERO, maximum=HUNDRED) -> Decimal:
    pct = to_decimal(value, field)
    if pct < to_decimal(minimum) or pct > to_decimal(maximum):
        raise ValidationError(f"{field} must be between {minimum} and {maximum}")
    return pct
