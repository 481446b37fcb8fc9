"""
Replay-backed exchange provider.

Simulation presents the ExchangeProvider interface on top of a ReplayEngine
so that strategy code runs unchanged against historical data:

- stream() passes the engine's close-time-ordered candles through, recording
  each symbol's latest close
- order() fills immediately and completely at that close
- cancel() always reports False since no resting orders exist
- balance() is the configured starting balance

Symbol listing and spot prices have no historical source; they delegate to
an optional upstream (live) provider.
"""

from __future__ import annotations

import itertools
from datetime import datetime
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Union

from ..config.config import SimulationConfig
from ..data.archive_store import ArchiveStore
from ..exchange.interfaces import Balance, ExchangeProvider, Order, OrderSide, Position
from ..types import Pair, StreamItem, Symbol
from ..utils.logger import get_logger
from ..utils.time_range import TimeLike
from .replay import ReplayEngine, ReplayStatus

logger = get_logger()

DEFAULT_BALANCE: Balance = {"USDT": 1000.0}


class Simulation:
    """
    ExchangeProvider variant replaying archived candles.

    Args:
        engine: ReplayEngine supplying candles, status and cursor
        initial_balance: Asset -> amount (default {"USDT": 1000})
        upstream: Provider used for symbols() and price()

    Usage:
        sim = Simulation.from_archive(LocalArchiveStore(".cache"), datetime(2024, 1, 1))
        for symbol, candle, interval in sim.stream([(btc, "1h")]):
            ...
            sim.order(btc, Order(side="buy", quantity=100, quote=True))
    """

    name = "simulation"

    def __init__(
        self,
        engine: ReplayEngine,
        initial_balance: Optional[Balance] = None,
        upstream: Optional[ExchangeProvider] = None,
    ):
        self.engine = engine
        self.upstream = upstream
        self._balance: Balance = dict(initial_balance if initial_balance is not None else DEFAULT_BALANCE)
        self._last_close: Dict[str, float] = {}
        self._fill_seq = itertools.count(1)

    @classmethod
    def from_archive(
        cls,
        archive_store: ArchiveStore,
        start: TimeLike,
        end: Optional[TimeLike] = None,
        initial_balance: Optional[Balance] = None,
        upstream: Optional[ExchangeProvider] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> "Simulation":
        engine = ReplayEngine(archive_store, start, end, now=now)
        return cls(engine, initial_balance, upstream)

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        archive_store: ArchiveStore,
        start: TimeLike,
        end: Optional[TimeLike] = None,
        upstream: Optional[ExchangeProvider] = None,
    ) -> "Simulation":
        return cls.from_archive(archive_store, start, end, config.initial_balance, upstream)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def status(self) -> ReplayStatus:
        return self.engine.status

    def reset(self) -> None:
        """Return the engine to INITIALIZING and forget observed prices."""
        self.engine.reset()
        self._last_close.clear()

    def last_close(self, symbol: Union[Symbol, str]) -> Optional[float]:
        """Most recently observed close for a symbol, or None."""
        return self._last_close.get(str(symbol))

    # -------------------------------------------------------------------------
    # ExchangeProvider
    # -------------------------------------------------------------------------

    def balance(self) -> Balance:
        return dict(self._balance)

    def symbols(self) -> List[Symbol]:
        return self._require_upstream("symbols").symbols()

    def time(self) -> int:
        """Replay cursor (epoch ms), -1 when not started or finished."""
        return self.engine.cursor

    def order(self, symbol: Symbol, order: Order) -> Position:
        """
        Fill an order at the latest observed close.

        - Quote-denominated quantities are converted to base units at the
          fill price
        - An explicit price is honoured for base quantities
        - slippage moves the fill price against the taker (up for buys,
          down for sells)

        Raises:
            ValueError: If no candle has been observed for symbol yet
        """
        close = self._last_close.get(str(symbol))
        if close is None:
            raise ValueError(f"No price observed for {symbol}; stream it before ordering")

        price = close if order.quote or order.price is None else order.price
        if order.slippage:
            direction = 1.0 if order.side == OrderSide.BUY else -1.0
            price *= 1.0 + direction * order.slippage
        quantity = order.quantity / price if order.quote else order.quantity

        time = self.engine.cursor
        position = Position(
            id=f"sim-{time}-{next(self._fill_seq)}",
            symbol=symbol,
            side=order.side,
            quantity=quantity,
            price=price,
            time=time,
            slippage=order.slippage,
        )
        logger.trade("SIM_FILL", str(symbol), order.side.value, quantity, price, id=position.id)
        return position

    def cancel(self, symbol: Symbol, id_or_position: Union[str, Position]) -> bool:
        """No resting orders exist in replay; always False."""
        return False

    def price(self, *symbols: Symbol) -> Dict[str, float]:
        return self._require_upstream("price").price(*symbols)

    def stream(self, pairs: Iterable[Pair]) -> Iterator[StreamItem]:
        """
        Pass-through of ReplayEngine.stream that records each symbol's close.

        Raises:
            InvalidInterval: Immediately, for unsupported intervals
        """
        return self._observe(self.engine.stream(pairs))

    def history(
        self,
        pairs: Iterable[Pair],
        start: TimeLike,
        end: Optional[TimeLike] = None,
    ) -> Iterator[StreamItem]:
        """Stateless replay over [start, end]. Prefer stream()."""
        return self.engine.history(pairs, start, end)

    def _observe(self, items: Iterator[StreamItem]) -> Iterator[StreamItem]:
        for item in items:
            symbol, candle, _ = item
            self._last_close[str(symbol)] = candle.close
            yield item

    def _require_upstream(self, operation: str) -> ExchangeProvider:
        if self.upstream is None:
            raise RuntimeError(f"Simulation.{operation}() needs an upstream provider; none was configured")
        return self.upstream
