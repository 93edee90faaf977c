"""
Tie-break weights for composite leaderboard scores.

A leaderboard stores `raw_score + weight` in a sorted set. The raw score
keeps `decimal_places` digits after the point; the weight lives strictly
beyond them, so members with equal raw scores are ordered by weight while
the displayed score is untouched.

A weight is built from a per-leaderboard counter value by placing the
counter's digits right after `decimal_places` zeros:

    compute_weight(7, 2)    -> 0.007
    compute_weight(42, 2)   -> 0.0042
    compute_weight(1, 0)    -> 0.1

Larger counters give larger weights only within the same digit length
(9 -> 0.009 but 10 -> 0.0010). The reverse weight is the complement up to
10^-decimal_places, for "earlier submission wins" orderings.

All arithmetic is exact `Decimal` inside a widened local context.
Floats coming back from the store are converted through `repr()` so the
shortest round-tripping digits are used, not the binary expansion.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_FLOOR, Decimal, localcontext
from typing import Optional, Union

Number = Union[int, float, Decimal]

DEFAULT_DECIMAL_PLACES = 2
MIN_DECIMAL_PLACES = 0
MAX_DECIMAL_PLACES = 10

# Decimal digits an IEEE-754 double always round-trips
DOUBLE_SAFE_DIGITS = 15

_CONTEXT_PRECISION = 64
_ZERO = Decimal(0)


def to_decimal(value: Number) -> Decimal:
    """Exact Decimal for ints and Decimals; shortest repr for floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a score")
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def _valid_places(decimal_places: int) -> bool:
    return MIN_DECIMAL_PLACES <= decimal_places <= MAX_DECIMAL_PLACES


def _unit(decimal_places: int) -> Decimal:
    """10^-decimal_places."""
    return Decimal(1).scaleb(-decimal_places)


# ============================================================================
# Weight construction
# ============================================================================


def compute_weight(counter_value: Optional[int], decimal_places: int) -> Decimal:
    """
    Forward weight for `counter_value`.

    Returns Decimal(0) when `counter_value` is missing or not positive, or
    when `decimal_places` is outside [0, 10].

    >>> compute_weight(1_000_000_000_001, 1)
    Decimal('0.01000000000001')
    """
    if counter_value is None or counter_value <= 0 or not _valid_places(decimal_places):
        return _ZERO

    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        digits = len(str(counter_value))
        return Decimal(counter_value).scaleb(-(digits + decimal_places))


def compute_reverse_weight(counter_value: Optional[int], decimal_places: int) -> Decimal:
    """
    Complement of the forward weight: `10^-decimal_places - compute_weight(...)`.

    Zero whenever the forward weight is zero.
    """
    weight = compute_weight(counter_value, decimal_places)
    if weight == _ZERO:
        return _ZERO

    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        return _unit(decimal_places) - weight


def compute_weight_default(counter_value: Optional[int]) -> Decimal:
    return compute_weight(counter_value, DEFAULT_DECIMAL_PLACES)


def compute_weight_unscaled(counter_value: Optional[int]) -> Decimal:
    return compute_weight(counter_value, 0)


def compute_reverse_weight_default(counter_value: Optional[int]) -> Decimal:
    return compute_reverse_weight(counter_value, DEFAULT_DECIMAL_PLACES)


def compute_reverse_weight_unscaled(counter_value: Optional[int]) -> Decimal:
    return compute_reverse_weight(counter_value, 0)


# ============================================================================
# Composite score helpers
# ============================================================================


def truncate_score(raw_score: Number, decimal_places: int) -> Decimal:
    """Drop digits past `decimal_places`, rounding toward zero."""
    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        return to_decimal(raw_score).quantize(_unit(decimal_places), rounding=ROUND_DOWN)


def to_display(score: Number, decimal_places: int) -> Decimal:
    """
    Display value of a stored composite score.

    Floors at `decimal_places`, so a positive weight never shows up and
    negative raw scores keep their value (-99.99 + 0.001 displays as -99.99).
    """
    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        return to_decimal(score).quantize(_unit(decimal_places), rounding=ROUND_FLOOR)


def extract_weight(score: Optional[Number], decimal_places: int) -> Decimal:
    """
    Weight fraction embedded in a stored composite score.

    Everything past `decimal_places` digits, measured from the floor, so
    the result is always in [0, 10^-decimal_places). `None` yields 0.

    >>> extract_weight(100.003, 2)
    Decimal('0.003')
    >>> extract_weight(0.25, 0)
    Decimal('0.25')
    """
    if score is None:
        return _ZERO

    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        value = to_decimal(score)
        return value - value.quantize(_unit(decimal_places), rounding=ROUND_FLOOR)


def is_valid_weight(weight: Optional[Number]) -> bool:
    """True for weights strictly between -1 and 1."""
    if weight is None or isinstance(weight, bool):
        return False
    try:
        value = to_decimal(weight)
    except (TypeError, ValueError, ArithmeticError):
        return False
    if not value.is_finite():
        return False
    return Decimal(-1) < value < Decimal(1)


def fits_below_display(weight: Number, decimal_places: int) -> bool:
    """
    True if `weight` lies in [0, 10^-decimal_places).

    Only such weights can be stripped back out of a composite: a stored
    99.999 at two places is 99.99 + 0.009, never 100 - 0.001.

    >>> fits_below_display(Decimal("0.009"), 2)
    True
    >>> fits_below_display(Decimal("-0.001"), 2)
    False
    """
    value = to_decimal(weight)
    return _ZERO <= value < _unit(decimal_places)


def precision_budget(raw_score: Number, weight: Number) -> int:
    """
    Significant decimal digits needed to store `raw_score + weight` exactly.

    >>> precision_budget(100, Decimal("0.001"))
    6
    """
    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        composite = to_decimal(raw_score) + to_decimal(weight)
        if composite == _ZERO:
            return 0
        return len(composite.normalize().as_tuple().digits)


def fits_precision_budget(
    raw_score: Number,
    weight: Number,
    max_digits: int = DOUBLE_SAFE_DIGITS,
) -> bool:
    """True if the composite survives a round trip through a double."""
    return precision_budget(raw_score, weight) <= max_digits
