"""
Core market data types shared by the runtime, replay and exchange layers.

A candle is addressed by its open time in epoch milliseconds (UTC). A symbol
is a (base, quote) pair whose string form is the exchange ticker, e.g. BTCUSDT.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


# Column positions of a kline row: [time, open, high, low, close, volume]
TIME = 0
OPEN = 1
HIGH = 2
LOW = 3
CLOSE = 4
VOLUME = 5


@dataclass(slots=True, frozen=True)
class Candle:
    """OHLCV candle keyed by open time (ms)."""

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __getitem__(self, index: int) -> float:
        return self.as_tuple()[index]

    def as_tuple(self) -> Tuple[int, float, float, float, float, float]:
        return (self.time, self.open, self.high, self.low, self.close, self.volume)

    @classmethod
    def from_row(cls, row) -> "Candle":
        """Build from any 6+ element row (time, open, high, low, close, volume, ...)."""
        return cls(
            time=int(row[TIME]),
            open=float(row[OPEN]),
            high=float(row[HIGH]),
            low=float(row[LOW]),
            close=float(row[CLOSE]),
            volume=float(row[VOLUME]),
        )


@dataclass(slots=True, frozen=True)
class Symbol:
    """
    Trading pair.

    Both legs are upper-cased on construction so that Symbol("btc", "usdt")
    and Symbol("BTC", "USDT") compare and hash identically.
    """

    base: str
    quote: str

    def __post_init__(self):
        object.__setattr__(self, "base", self.base.strip().upper())
        object.__setattr__(self, "quote", self.quote.strip().upper())
        if not self.base or not self.quote:
            raise ValueError(f"Invalid symbol: base={self.base!r} quote={self.quote!r}")

    def __str__(self) -> str:
        return f"{self.base}{self.quote}"


# (symbol, interval) requested from a provider
Pair = Tuple[Symbol, str]

# (symbol, candle, interval) emitted by a provider
StreamItem = Tuple[Symbol, Candle, str]
