"""
Series and indicator primitives.

    from candlestream.analysis import math as ta_math, trend
    fast = trend.ema(ctx.close, 9)
    slow = trend.ema(ctx.close, 21)
    crossed = ta_math.gt(fast, slow).at(0)
"""

from . import math, trend
from .series import (
    NO_VALUE,
    Indicator,
    ListSeries,
    Series,
    SeriesLike,
    as_series,
    map_series,
    value_at,
)
from .trend import ema, sma

__all__ = [
    "NO_VALUE",
    "Indicator",
    "ListSeries",
    "Series",
    "SeriesLike",
    "as_series",
    "map_series",
    "value_at",
    "math",
    "trend",
    "ema",
    "sma",
]
