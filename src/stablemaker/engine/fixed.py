"""Fixed-point decimal helpers.

Every value that is not a whole coin amount (prices, rates, USD values) is a
``Decimal`` carrying 18 fractional digits. Products and quotients are
quantized back to 18 places after every operation so that two nodes running
the same sequence of operations always agree bit for bit.

Arithmetic runs inside a private decimal context; the caller's global context
is never modified.
"""

from decimal import (
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    localcontext,
)
from typing import Union

PRECISION = 18
QUANTUM = Decimal(1).scaleb(-PRECISION)

ZERO = Decimal(0)
ONE = Decimal(1)

# 96 significant digits hold a 256-bit integer (78 digits) plus 18 fractional places
_CONTEXT = Context(prec=96, rounding=ROUND_HALF_EVEN)

Number = Union[Decimal, int, str]


def dec(value: Number) -> Decimal:
    """Convert an int, string or Decimal to an 18-place Decimal."""
    if isinstance(value, float):
        raise TypeError("floats are not accepted in fixed-point arithmetic")
    with localcontext(_CONTEXT):
        return Decimal(value).quantize(QUANTUM, rounding=ROUND_HALF_EVEN)


def _quantize(value: Decimal, rounding: str) -> Decimal:
    return value.quantize(QUANTUM, rounding=rounding)


def add(a: Number, b: Number) -> Decimal:
    with localcontext(_CONTEXT):
        return _quantize(dec(a) + dec(b), ROUND_HALF_EVEN)


def sub(a: Number, b: Number) -> Decimal:
    with localcontext(_CONTEXT):
        return _quantize(dec(a) - dec(b), ROUND_HALF_EVEN)


def mul(a: Number, b: Number) -> Decimal:
    """Multiply, rounding the 18th place half-to-even."""
    with localcontext(_CONTEXT):
        return _quantize(dec(a) * dec(b), ROUND_HALF_EVEN)


def mul_truncate(a: Number, b: Number) -> Decimal:
    with localcontext(_CONTEXT) as ctx:
        ctx.rounding = ROUND_DOWN
        return _quantize(dec(a) * dec(b), ROUND_DOWN)


def quo(a: Number, b: Number) -> Decimal:
    """Divide, rounding the 18th place half-to-even."""
    with localcontext(_CONTEXT):
        return _quantize(dec(a) / dec(b), ROUND_HALF_EVEN)


def quo_round_up(a: Number, b: Number) -> Decimal:
    """Divide, rounding the 18th place away from zero for positive results."""
    with localcontext(_CONTEXT) as ctx:
        ctx.rounding = ROUND_CEILING
        return _quantize(dec(a) / dec(b), ROUND_CEILING)


def quo_truncate(a: Number, b: Number) -> Decimal:
    """Divide, dropping everything past the 18th place."""
    with localcontext(_CONTEXT) as ctx:
        ctx.rounding = ROUND_DOWN
        return _quantize(dec(a) / dec(b), ROUND_DOWN)


def round_int(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    with localcontext(_CONTEXT):
        return int(dec(value).to_integral_value(rounding=ROUND_HALF_UP))


def truncate_int(value: Decimal) -> int:
    with localcontext(_CONTEXT):
        return int(dec(value).to_integral_value(rounding=ROUND_DOWN))


def ceil_int(value: Decimal) -> int:
    with localcontext(_CONTEXT):
        return int(dec(value).to_integral_value(rounding=ROUND_CEILING))


def min_dec(a: Decimal, b: Decimal) -> Decimal:
    return a if a <= b else b
