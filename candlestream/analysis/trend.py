"""
Trend indicators: moving averages over a Series.

Runtime series are newest-first, so index 0 is the latest bar and the window
at index i spans bars i .. i+length-1.
"""

from __future__ import annotations

import math

from .series import Indicator, SeriesLike, as_series


def sma(source: SeriesLike, length: int) -> Indicator[float]:
    """
    **Simple Moving Average (SMA)**

    The sum of the last `length` values divided by `length`.

    Args:
        source: Series of values to process.
        length: Number of bars (length).

    Returns:
        Simple moving average of `source` for `length` bars back. Where the
        window runs past the end of the source the sum is undefined and the
        value is 0.
    """
    source = as_series(source)

    def fn(i: int) -> float:
        total = 0.0
        for j in range(length):
            value = source.at(i + j)
            if value is None:
                total = math.nan
                break
            total += value
        if math.isnan(total):
            return 0.0
        return total / length

    return Indicator(fn, source.length, "sma")


def ema(source: SeriesLike, length: int) -> Indicator[float]:
    """
    **Exponential Moving Average (EMA)**

    ema[0] = source[0]
    ema[i] = (source[i] - ema[i-1]) * 2 / (length + 1) + ema[i-1]

    The recurrence reads the indicator's own previous output, not the source.

    Args:
        source: Series of values to process.
        length: Number of bars (length).

    Returns:
        Exponential moving average of `source` for `length` bars back.
    """
    source = as_series(source)
    alpha = 2 / (length + 1)

    def fn(i: int) -> float:
        if i == 0:
            return source.at(0)
        # Fill uncached predecessors in ascending order so each step only
        # reaches one level down instead of recursing i deep.
        start = i - 1
        while start > 0 and not out.is_cached(start):
            start -= 1
        for k in range(start, i - 1):
            out.at(k)
        prev = out.at(i - 1)
        return (source.at(i) - prev) * alpha + prev

    out: Indicator[float] = Indicator(fn, source.length, "ema")
    return out
