"""Fixed-point decimal arithmetic for 18-decimal token quantities.

Every balance, share price and unit price is a ``decimal.Decimal`` holding a
raw scaled integer (e.g. ``1.05`` share price -> ``1050000000000000000``).
Arithmetic runs under ``FIXED_POINT_CONTEXT`` (96 significant digits) so that
products of three 18-decimal quantities (54+ digits) stay exact. ``add``,
``sub`` and ``mul`` never round: a result wider than 96 digits raises
``FixedPointError``. ``div`` rounds at 96 digits, and callers truncate the
quotient back to an integer.
"""

import operator
from decimal import (
    ROUND_DOWN,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    Rounded,
    localcontext,
)
from typing import Callable, Union

from ..errors import FixedPointError

Number = Union[int, str, float, Decimal]

FIXED_POINT_CONTEXT = Context(
    prec=96,
    traps=[DivisionByZero, InvalidOperation, Overflow],
)

# Same precision; any discarded digit is an error
EXACT_CONTEXT = Context(
    prec=FIXED_POINT_CONTEXT.prec,
    traps=[DivisionByZero, InvalidOperation, Overflow, Rounded],
)

DEFAULT_DECIMALS = 18
WAD = Decimal(10) ** DEFAULT_DECIMALS
WAD_SQUARED = WAD * WAD
ZERO = Decimal(0)
ONE = Decimal(1)


def to_decimal(value: Number) -> Decimal:
    """
    Convert a number to Decimal without binary floating-point artifacts.

    Floats go through ``repr`` so ``2.85`` becomes ``Decimal('2.85')``,
    not ``Decimal('2.850000000000000088817841970012523233890533447265625')``.
    """
    if isinstance(value, bool):
        raise TypeError("booleans are not numeric quantities")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise FixedPointError(f"not a decimal number: {value!r}") from exc
    else:
        raise TypeError(f"unsupported numeric type: {type(value).__name__}")

    # NaN and Infinity never represent a balance or price
    if not result.is_finite():
        raise FixedPointError(f"non-finite quantity: {value!r}")
    return result


def scale_for(decimals: int) -> Decimal:
    """Return ``10 ** decimals`` as a Decimal."""
    if decimals < 0:
        raise FixedPointError(f"invalid decimal scale: {decimals}")
    return Decimal(10) ** decimals


def truncate(value: Decimal) -> Decimal:
    """Truncate toward zero to an integral Decimal."""
    with localcontext(FIXED_POINT_CONTEXT):
        return value.quantize(ONE, rounding=ROUND_DOWN)


def to_fixed(value: Number, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Human quantity -> raw scaled integer (``2.85`` -> ``2.85e18``)."""
    with localcontext(FIXED_POINT_CONTEXT):
        return truncate(to_decimal(value) * scale_for(decimals))


def from_fixed(value: Number, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Raw scaled integer -> human quantity."""
    return div(to_decimal(value), scale_for(decimals))


def _exact(operation: Callable[[Decimal, Decimal], Decimal], a: Number, b: Number) -> Decimal:
    x, y = to_decimal(a), to_decimal(b)
    try:
        with localcontext(EXACT_CONTEXT):
            return operation(x, y)
    except Rounded as exc:
        raise FixedPointError(
            f"result of {operation.__name__}({a}, {b}) exceeds {EXACT_CONTEXT.prec} significant digits"
        ) from exc


def add(a: Number, b: Number) -> Decimal:
    return _exact(operator.add, a, b)


def sub(a: Number, b: Number) -> Decimal:
    return _exact(operator.sub, a, b)


def mul(a: Number, b: Number) -> Decimal:
    """
    Exact product.

    Raises:
        FixedPointError: If the product needs more than 96 significant digits
    """
    return _exact(operator.mul, a, b)


def div(a: Number, b: Number) -> Decimal:
    """
    Full-precision division.

    Raises:
        FixedPointError: If the divisor is zero
    """
    divisor = to_decimal(b)
    if divisor == ZERO:
        raise FixedPointError(f"division by zero: {a} / {b}")
    with localcontext(FIXED_POINT_CONTEXT):
        return to_decimal(a) / divisor


def scaled_div(value: Number, scale: Number) -> Decimal:
    """Divide then truncate to an integer, e.g. a 1e36 intermediate back to 1e18."""
    return truncate(div(value, scale))


def mul_div(a: Number, b: Number, denominator: Number) -> Decimal:
    """``truncate(a * b / denominator)`` with an exact intermediate product."""
    return scaled_div(mul(a, b), denominator)
