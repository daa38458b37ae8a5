"""
tribunalsettle/core/fixedpoint.py

Fixed-point math kernel.

The on-chain program computes every share as a u128 multiply followed by
a floor division, then narrows to u64. Python integers never wrap, so the
widths are enforced explicitly: leaving a width raises
ArithmeticOverflowError instead of wrapping or truncating.

No floating point anywhere in this module.
"""

from typing import Optional

from tribunalsettle.core.constants import (
    MAX_BPS,
    ONE_HUNDRED_PERCENT,
    U64_MAX,
    U128_MAX,
)
from tribunalsettle.core.exceptions import ArithmeticOverflowError


# ── Width checks ──────────────────────────────────────────────────────────────

def checked_u64(value: int, context: str = "value") -> int:
    """Return value unchanged if it fits in a u64, else raise."""
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflowError(
            "u64 overflow",
            {"context": context, "value": value},
        )
    return value


def checked_u128(value: int, context: str = "value") -> int:
    """Return value unchanged if it fits in a u128, else raise."""
    if value < 0 or value > U128_MAX:
        raise ArithmeticOverflowError(
            "u128 overflow",
            {"context": context, "value": value},
        )
    return value


def checked_add(a: int, b: int, context: str = "add") -> int:
    return checked_u64(a + b, context)


def checked_sub(a: int, b: int, context: str = "sub") -> int:
    """u64 subtraction; underflow is reported as an overflow."""
    return checked_u64(a - b, context)


def saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


# ── Square root ───────────────────────────────────────────────────────────────

def integer_sqrt(n: int) -> int:
    """
    Floor square root by integer Newton iteration.

    Guarantees r*r <= n < (r+1)*(r+1). The iteration starts at
    (n + 1) // 2 and descends monotonically to the fixed point.

    Raises:
        ValueError: n is negative
        ArithmeticOverflowError: n does not fit in a u128
    """
    if n < 0:
        raise ValueError(f"integer_sqrt of negative value: {n}")
    checked_u128(n, "integer_sqrt")
    if n == 0:
        return 0
    x = n
    y = (x + 1) // 2
    while y < x:
        x = y
        y = (x + n // x) // 2
    return x


# ── Multiply / divide ─────────────────────────────────────────────────────────

def mul_div(
    a: int,
    b: int,
    denominator: int,
    context: str = "mul_div",
) -> int:
    """
    floor(a * b / denominator) with a u128 intermediate and u64 result.

    A zero denominator is a degenerate input, not an error: the share
    is zero.
    """
    if denominator == 0:
        return 0
    product = checked_u128(a * b, context)
    return checked_u64(product // denominator, context)


def bps_of(amount: int, bps: int, context: str = "bps") -> int:
    """floor(amount * bps / 10_000)"""
    return mul_div(amount, bps, MAX_BPS, context)


def percent_of(value: int, scaled_percent: int, context: str = "percent") -> int:
    """Scale value by a reputation-style percentage (100% = 100_000_000)."""
    return mul_div(value, scaled_percent, ONE_HUNDRED_PERCENT, context)


def div_trunc(a: int, b: int) -> int:
    """Signed integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def clamp(value: int, low: int, high: Optional[int] = None) -> int:
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value
