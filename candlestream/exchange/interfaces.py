"""
Protocol definitions for exchange providers.

A provider is anything strategy code trades against. Two variants exist and
are selected at construction time:
- LiveProvider: Bybit REST + websocket
- Simulation: replay of monthly archives through a ReplayEngine

Both yield candles as (symbol, candle, interval) in close-time order, so
strategy code and the RuntimeStore are fed identically in either mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Union, runtime_checkable

from ..types import Pair, StreamItem, Symbol
from ..utils.time_range import TimeLike


# =============================================================================
# Data Types
# =============================================================================


# Asset -> available amount, e.g. {"USDT": 1000.0, "BTC": 0.1}
Balance = Dict[str, float]


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"


@dataclass(slots=True)
class Order:
    """
    Order request.

    Attributes:
        side: buy or sell
        quantity: Amount to trade, in base units unless quote is set
        type: MARKET or LIMIT
        price: Limit price. Ignored when quantity is quote-denominated.
        quote: Whether quantity is expressed in the quote currency
        slippage: Optional fraction (0.001 = 0.1%) applied against the taker
            by the simulation
    """
    side: OrderSide
    quantity: float
    type: OrderType = OrderType.MARKET
    price: Optional[float] = None
    quote: bool = False
    slippage: Optional[float] = None

    def __post_init__(self):
        self.side = OrderSide(self.side)
        self.type = OrderType(self.type)
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        if self.type == OrderType.LIMIT and self.price is None and not self.quote:
            raise ValueError("LIMIT order requires a price")
        if self.slippage is not None and self.slippage < 0:
            raise ValueError(f"slippage must be >= 0, got {self.slippage}")


@dataclass(slots=True, frozen=True)
class Position:
    """
    Filled order.

    Attributes:
        id: Exchange (or simulation) order id
        symbol: Traded symbol
        side: buy or sell
        quantity: Filled base quantity
        price: Average fill price
        time: Fill time (epoch ms)
        slippage: Applied slippage fraction, if any
    """
    id: str
    symbol: Symbol
    side: OrderSide
    quantity: float
    price: float
    time: int
    slippage: Optional[float] = None

    @property
    def notional(self) -> float:
        """Quote value of the fill."""
        return self.quantity * self.price


# =============================================================================
# Provider Protocol
# =============================================================================


@runtime_checkable
class ExchangeProvider(Protocol):
    """
    Capability interface shared by live and replay providers.

    All methods raise on failure; nothing returns an error flag except
    cancel(), whose False means "nothing was cancelled".
    """

    name: str

    def balance(self) -> Balance:
        """Available balance per asset."""
        ...

    def symbols(self) -> List[Symbol]:
        """Tradable symbols."""
        ...

    def time(self) -> int:
        """Current exchange time (epoch ms)."""
        ...

    def order(self, symbol: Symbol, order: Order) -> Position:
        """Place an order and return the resulting fill."""
        ...

    def cancel(self, symbol: Symbol, id_or_position: Union[str, Position]) -> bool:
        """Cancel an open order. Returns False if nothing was cancelled."""
        ...

    def price(self, *symbols: Symbol) -> Dict[str, float]:
        """Latest price keyed by ticker (e.g., "BTCUSDT")."""
        ...

    def stream(self, pairs: Iterable[Pair]) -> Iterator[StreamItem]:
        """Closed candles for the given pairs, in close-time order."""
        ...

    def history(
        self,
        pairs: Iterable[Pair],
        start: TimeLike,
        end: Optional[TimeLike] = None,
    ) -> Iterator[StreamItem]:
        """Archived candles for the given pairs within [start, end]."""
        ...
