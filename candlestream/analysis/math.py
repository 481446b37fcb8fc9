"""
Elementwise and sliding math indicators.

Every function is a pure constructor: it returns a new Indicator over the
source and computes nothing until values are read.

Numeric semantics follow IEEE floats. Out-of-domain inputs (acos(4), log(0),
x / 0) produce nan or +/-inf rather than raising, so an indicator read never
fails.

Series produced by the runtime are newest-first: index 0 is the latest bar,
so a sliding window at index i covers i, i+1, ..., i+length-1 (older bars).
"""

from __future__ import annotations

import builtins
import math as _math
from numbers import Real
from typing import Callable, Union

import numpy as np

from .series import Indicator, Series, SeriesLike, as_series, map_series

Operand = Union[SeriesLike, float, int]


def _ieee(fn: Callable[[float], float]) -> Callable[[float, int], float]:
    def apply(value, _i):
        if value is None:
            return _math.nan
        with np.errstate(all="ignore"):
            return float(fn(np.float64(value)))
    return apply


def _is_scalar(operand) -> bool:
    return isinstance(operand, (Real, np.number)) and not isinstance(operand, bool)


def _operand_at(operand, i: int) -> float:
    """Resolve a scalar-or-series operand at index i; missing values are nan."""
    if _is_scalar(operand):
        return float(operand)
    value = operand.at(i)
    return _math.nan if value is None else value


def _prepare(operand):
    return operand if _is_scalar(operand) else as_series(operand)


def abs(source: SeriesLike) -> Indicator[float]:
    """
    Absolute value of `number` is `number` if `number` >= 0, or -`number` otherwise.
    """
    return map_series(source, _ieee(np.abs), "abs")


def acos(source: SeriesLike) -> Indicator[float]:
    """Arc cosine in radians, in [0, pi]; nan outside [-1, 1]."""
    return map_series(source, _ieee(np.arccos), "acos")


def asin(source: SeriesLike) -> Indicator[float]:
    """Arc sine in radians, in [-pi/2, pi/2]; nan outside [-1, 1]."""
    return map_series(source, _ieee(np.arcsin), "asin")


def atan(source: SeriesLike) -> Indicator[float]:
    """Arc tangent in radians, in [-pi/2, pi/2]."""
    return map_series(source, _ieee(np.arctan), "atan")


def ceil(source: SeriesLike) -> Indicator[float]:
    """Smallest integer greater than or equal to the value."""
    return map_series(source, _ieee(np.ceil), "ceil")


def cos(source: SeriesLike) -> Indicator[float]:
    return map_series(source, _ieee(np.cos), "cos")


def exp(source: SeriesLike) -> Indicator[float]:
    """e raised to the power of the value."""
    return map_series(source, _ieee(np.exp), "exp")


def floor(source: SeriesLike) -> Indicator[float]:
    """Largest integer less than or equal to the value."""
    return map_series(source, _ieee(np.floor), "floor")


def log(source: SeriesLike) -> Indicator[float]:
    """Natural logarithm; -inf at 0, nan for negatives."""
    return map_series(source, _ieee(np.log), "log")


def log10(source: SeriesLike) -> Indicator[float]:
    """Base-10 logarithm; -inf at 0, nan for negatives."""
    return map_series(source, _ieee(np.log10), "log10")


def round(source: SeriesLike) -> Indicator[float]:
    """Round to the nearest integer, ties rounding up (2.5 -> 3, -2.5 -> -2)."""
    return map_series(source, _ieee(lambda v: np.floor(v + 0.5)), "round")


def sign(source: SeriesLike) -> Indicator[float]:
    """1.0 if positive, -1.0 if negative, 0.0 if zero."""
    return map_series(source, _ieee(np.sign), "sign")


def sin(source: SeriesLike) -> Indicator[float]:
    return map_series(source, _ieee(np.sin), "sin")


def sqrt(source: SeriesLike) -> Indicator[float]:
    """Square root; nan for negatives."""
    return map_series(source, _ieee(np.sqrt), "sqrt")


def tan(source: SeriesLike) -> Indicator[float]:
    return map_series(source, _ieee(np.tan), "tan")


def pow(source: SeriesLike, exponent: float) -> Indicator[float]:
    """`source` raised to the power of `exponent`, elementwise."""
    return map_series(source, _ieee(lambda v: np.power(v, exponent)), "pow")


def clamp(source: SeriesLike, lower: float, upper: float) -> Indicator[float]:
    """Value clamped to [lower, upper]."""
    return map_series(source, _ieee(lambda v: np.minimum(np.maximum(v, lower), upper)), "clamp")


def _extreme(sources, start: float, pick: Callable, name: str) -> Indicator[float]:
    prepared = [_prepare(s) for s in sources]
    length = builtins.max([0] + [s.length for s in prepared if not _is_scalar(s)])

    def fn(i: int) -> float:
        result = np.float64(start)
        for s in prepared:
            if _is_scalar(s):
                value = s
            else:
                value = s.at(i)
                if value is None:
                    value = start
            result = pick(result, value)
        return float(result)

    return Indicator(fn, length, name)


def max(*sources: Operand) -> Indicator[float]:
    """
    Greatest of multiple series and/or scalars, elementwise.

    The length is that of the longest series. Series shorter than that
    contribute -inf past their end.
    """
    return _extreme(sources, -_math.inf, np.maximum, "max")


def min(*sources: Operand) -> Indicator[float]:
    """
    Smallest of multiple series and/or scalars, elementwise.

    The length is that of the longest series. Series shorter than that
    contribute +inf past their end.
    """
    return _extreme(sources, _math.inf, np.minimum, "min")


def _window_sum(source: Series, i: int, length: int) -> float:
    total = 0.0
    for j in range(length):
        value = source.at(i + j) if i + j < source.length else None
        total += 0.0 if value is None else value
    return total


def sum(source: SeriesLike, length: int) -> Indicator[float]:
    """
    Sliding sum of `length` bars back.

    Window elements past the end of the source contribute 0.
    """
    source = as_series(source)
    return Indicator(lambda i: _window_sum(source, i, length), source.length, "sum")


def avg(source: SeriesLike, length: int) -> Indicator[float]:
    """
    Sliding average of `length` bars back.

    Window elements past the end of the source contribute 0; the divisor is
    always `length`. A window whose sum is nan averages to 0.
    """
    source = as_series(source)

    def fn(i: int) -> float:
        total = _window_sum(source, i, length)
        return 0.0 if _math.isnan(total) else total / length

    return Indicator(fn, source.length, "avg")


def diff(source: SeriesLike, length: int) -> Indicator[float]:
    """
    Difference between the value `length` bars back and the current value.

    0 where `length` bars back is past the end of the source.
    """
    source = as_series(source)

    def fn(value, i):
        back = source.at(i + length) if i + length < source.length else None
        return (value if back is None else back) - value

    return map_series(source, fn, "diff")


def _binary(source: SeriesLike, operand: Operand, op: Callable, name: str) -> Indicator:
    operand = _prepare(operand)

    def fn(value, i):
        with np.errstate(all="ignore"):
            result = op(np.float64(_math.nan if value is None else value), _operand_at(operand, i))
        return result.item() if isinstance(result, np.generic) else result

    return map_series(source, fn, name)


def add(source: SeriesLike, addend: Operand) -> Indicator[float]:
    """Elementwise `source` + `addend` (series or scalar)."""
    return _binary(source, addend, lambda a, b: a + b, "add")


def sub(source: SeriesLike, subtrahend: Operand) -> Indicator[float]:
    """Elementwise `source` - `subtrahend` (series or scalar)."""
    return _binary(source, subtrahend, lambda a, b: a - b, "sub")


def mul(source: SeriesLike, multiplier: Operand) -> Indicator[float]:
    """Elementwise `source` * `multiplier` (series or scalar)."""
    return _binary(source, multiplier, lambda a, b: a * b, "mul")


def div(source: SeriesLike, divisor: Operand) -> Indicator[float]:
    """Elementwise `source` / `divisor` (series or scalar); x / 0 is +/-inf or nan."""
    return _binary(source, divisor, lambda a, b: a / b, "div")


def gt(source: SeriesLike, target: Operand) -> Indicator[bool]:
    """Elementwise `source` > `target`."""
    return _binary(source, target, lambda a, b: bool(a > b), "gt")


def gte(source: SeriesLike, target: Operand) -> Indicator[bool]:
    """Elementwise `source` >= `target`."""
    return _binary(source, target, lambda a, b: bool(a >= b), "gte")


def lt(source: SeriesLike, target: Operand) -> Indicator[bool]:
    """Elementwise `source` < `target`."""
    return _binary(source, target, lambda a, b: bool(a < b), "lt")


def lte(source: SeriesLike, target: Operand) -> Indicator[bool]:
    """Elementwise `source` <= `target`."""
    return _binary(source, target, lambda a, b: bool(a <= b), "lte")


def eq(source: SeriesLike, target: Operand) -> Indicator[bool]:
    """Elementwise `source` == `target`."""
    return _binary(source, target, lambda a, b: bool(a == b), "eq")


def neq(source: SeriesLike, target: Operand) -> Indicator[bool]:
    """Elementwise `source` != `target`."""
    return _binary(source, target, lambda a, b: bool(a != b), "neq")
