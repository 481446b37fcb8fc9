"""
Read-only runtime snapshot handed to strategy code.

Replaces process-wide "current symbol/interval/series" state: each strategy
invocation receives its own context bound to one RuntimeStore and one
(symbol, interval) key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from ..types import Symbol
from ..utils.time_range import from_ms

if TYPE_CHECKING:
    from ..analysis.series import ListSeries
    from .store import RuntimeStore, SeriesSet


@dataclass(frozen=True)
class RuntimeContext:
    """
    Bound view of a RuntimeStore key.

    Series are newest-first views; ``ctx.close.at(0)`` is the latest close.
    """
    store: "RuntimeStore"
    symbol: Union[Symbol, str]
    interval: str

    def series(self, symbol_or_interval: Union[Symbol, str], interval: Optional[str] = None) -> "SeriesSet":
        """
        Series for another key.

        ctx.series("4h") reads the context symbol at 4h;
        ctx.series(other_symbol, "1h") reads another symbol.
        """
        if interval is None:
            return self.store.series(self.symbol, symbol_or_interval)
        return self.store.series(symbol_or_interval, interval)

    @property
    def _own(self) -> "SeriesSet":
        return self.store.series(self.symbol, self.interval)

    @property
    def time(self) -> "ListSeries[int]":
        return self._own.time

    @property
    def open(self) -> "ListSeries[float]":
        return self._own.open

    @property
    def high(self) -> "ListSeries[float]":
        return self._own.high

    @property
    def low(self) -> "ListSeries[float]":
        return self._own.low

    @property
    def close(self) -> "ListSeries[float]":
        return self._own.close

    @property
    def volume(self) -> "ListSeries[float]":
        return self._own.volume

    @property
    def is_ready(self) -> bool:
        return self.store.is_ready(self.symbol, self.interval)

    @property
    def timestamp(self) -> Optional[int]:
        """Open time (ms) of the latest candle."""
        return self.time.at(0)

    @property
    def day(self) -> Optional[int]:
        """UTC weekday of the latest candle, Sunday = 0."""
        ts = self.timestamp
        return None if ts is None else (from_ms(ts).weekday() + 1) % 7

    @property
    def month(self) -> Optional[int]:
        """UTC month (1-12) of the latest candle."""
        ts = self.timestamp
        return None if ts is None else from_ms(ts).month

    @property
    def year(self) -> Optional[int]:
        """UTC year of the latest candle."""
        ts = self.timestamp
        return None if ts is None else from_ms(ts).year
