"""
Numeric -- Deterministic monetary arithmetic for budget figures.

Responsibility:
    Provides the rounding and truncation primitives every derived budget
    figure passes through, plus coercion of caller input into ``Decimal``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by the node types and by every engine.

Invariants enforced:
    - Products (quantity x unit price, unit price x markup factor) are
      truncated to cents with ``truncate_money``.
    - Sums across siblings and percentages are rounded half-up to cents with
      ``round_money``.
    - Percentages of a zero or negative base are 0, never a division error.

Failure modes:
    - ValueError from ``to_decimal`` when the input is not numeric.

Audit relevance:
    Mixing truncation and rounding changes reported totals by fractions of a
    cent. Keeping both in one module makes the policy reviewable in one place.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_PLACES = 2
CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

Numeric = Decimal | int | float | str


def to_decimal(value: Numeric | None) -> Decimal:
    """
    Coerce a caller-supplied number into ``Decimal``.

    Floats go through ``str`` so the binary representation error of the
    float never reaches the arithmetic. ``None`` is treated as zero, matching
    the default of every numeric node field.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid numeric value: {value!r}") from e


def round_money(value: Numeric) -> Decimal:
    """Round half-up to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def truncate_money(value: Numeric) -> Decimal:
    """Truncate toward zero to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_DOWN)


def sum_money(values: Iterable[Numeric]) -> Decimal:
    """Sum amounts, then round the total half-up."""
    return round_money(sum((to_decimal(v) for v in values), ZERO))


def clamp_non_negative(value: Numeric | None) -> Decimal:
    """Coerce and clamp to zero or above."""
    amount = to_decimal(value)
    return amount if amount > ZERO else ZERO


def percentage_of(part: Numeric, whole: Numeric) -> Decimal:
    """``round(part / whole * 100)``; 0 when ``whole`` is not positive."""
    base = to_decimal(whole)
    if base <= ZERO:
        return round_money(ZERO)
    return round_money(to_decimal(part) / base * HUNDRED)


def markup_factor(markup_rate: Numeric) -> Decimal:
    """Multiplier for a markup rate given in percent (25 -> 1.25)."""
    return Decimal("1") + to_decimal(markup_rate) / HUNDRED


def apply_markup(unit_price: Numeric, markup_rate: Numeric) -> Decimal:
    """Marked-up unit price, truncated to cents."""
    return truncate_money(to_decimal(unit_price) * markup_factor(markup_rate))


def extended_total(quantity: Numeric, unit_price: Numeric) -> Decimal:
    """Quantity x unit price, truncated to cents."""
    return truncate_money(to_decimal(quantity) * to_decimal(unit_price))
