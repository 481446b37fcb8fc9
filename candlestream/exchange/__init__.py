"""
Exchange providers: capability interface and the live Bybit variant.

The replay variant lives in candlestream.sim.
"""

from .interfaces import Balance, ExchangeProvider, Order, OrderSide, OrderType, Position
from .live import LiveAPIError, LiveProvider, TransportFailure

__all__ = [
    "Balance",
    "ExchangeProvider",
    "Order",
    "OrderSide",
    "OrderType",
    "Position",
    "LiveProvider",
    "LiveAPIError",
    "TransportFailure",
]
