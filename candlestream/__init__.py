"""
candlestream: lazy indicator series, bounded candle windows and a
close-time-ordered replay engine sharing one interface with live Bybit data.
"""

from .analysis import NO_VALUE, Indicator, ListSeries, Series, as_series
from .data import ArchiveStore, ArchiveUnavailable, ArchiveUnit, LocalArchiveStore
from .exchange import ExchangeProvider, LiveProvider, Order, OrderSide, OrderType, Position, TransportFailure
from .runtime import HistoryOptions, RuntimeContext, RuntimeOptions, RuntimeStore, run
from .sim import ReplayEngine, ReplayFault, ReplayStatus, Simulation
from .types import Candle, Pair, StreamItem, Symbol
from .utils.timeframes import INTERVALS, InvalidInterval

__version__ = "1.0.0"

__all__ = [
    # Types
    "Candle",
    "Symbol",
    "Pair",
    "StreamItem",
    "INTERVALS",
    # Series
    "NO_VALUE",
    "Series",
    "Indicator",
    "ListSeries",
    "as_series",
    # Runtime
    "RuntimeStore",
    "RuntimeOptions",
    "HistoryOptions",
    "RuntimeContext",
    "run",
    # Data
    "ArchiveStore",
    "ArchiveUnit",
    "LocalArchiveStore",
    # Providers
    "ExchangeProvider",
    "Order",
    "OrderSide",
    "OrderType",
    "Position",
    "LiveProvider",
    "Simulation",
    "ReplayEngine",
    "ReplayStatus",
    # Errors
    "InvalidInterval",
    "ArchiveUnavailable",
    "TransportFailure",
    "ReplayFault",
]
