"""
Live Bybit provider using the official pybit library.

REST (pybit.unified_trading.HTTP):
- balance, symbols, time, price, order, cancel

Websocket (pybit.unified_trading.WebSocket):
- kline_stream callbacks run on pybit's socket thread; they are bridged into
  a pull-based generator through a thread-safe queue.Queue
- only confirmed (closed) klines are emitted
- a dropped connection is re-established up to max_retries consecutive
  times before TransportFailure surfaces to the caller

Keep-alive (ping/pong) is handled inside pybit.
"""

from __future__ import annotations

import queue
import time
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from pybit.exceptions import FailedRequestError, InvalidRequestError
from pybit.unified_trading import HTTP, WebSocket

from ..config.config import LiveConfig, get_config
from ..data.archive_store import ArchiveStore, LocalArchiveStore
from ..data.realtime_models import KlineMessage
from ..types import Pair, StreamItem, Symbol
from ..utils.logger import get_logger
from ..utils.time_range import TimeLike
from ..utils.timeframes import to_bybit_interval
from .interfaces import Balance, Order, OrderSide, OrderType, Position

logger = get_logger()


class TransportFailure(Exception):
    """Raised when the kline websocket cannot be (re)established."""


class LiveAPIError(Exception):
    """Wraps pybit REST errors."""

    def __init__(self, code: int, message: str, original: Exception = None):
        self.code = code
        self.message = message
        self.original = original
        super().__init__(f"Bybit API Error {code}: {message}")

    @classmethod
    def from_pybit(cls, error: Union[FailedRequestError, InvalidRequestError]) -> "LiveAPIError":
        return cls(
            code=getattr(error, "status_code", -1),
            message=str(error.message) if hasattr(error, "message") else str(error),
            original=error,
        )


def handle_pybit_errors(func):
    """Decorator to convert pybit exceptions to LiveAPIError."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (FailedRequestError, InvalidRequestError) as e:
            raise LiveAPIError.from_pybit(e) from e
    return wrapper


def _extract_result(response) -> dict:
    """
    Extract "result" from a pybit response.

    pybit returns a dict, or a tuple (data, duration, headers) when
    return_response_headers is enabled.
    """
    if isinstance(response, tuple):
        response = response[0]
    if isinstance(response, dict):
        return response.get("result", {}) or {}
    return {}


class LiveProvider:
    """
    ExchangeProvider variant backed by Bybit.

    Usage:
        # Public market data only
        provider = LiveProvider()
        for symbol, candle, interval in provider.stream([(Symbol("BTC", "USDT"), "1m")]):
            ...

        # Trading (credentials required)
        provider = LiveProvider.from_config(get_config().live)

    Args:
        api_key, api_secret: Credentials for balance/order/cancel
        use_demo: True for DEMO (fake money), False for LIVE
        category: Bybit product category (spot, linear, ...)
        max_retries: Consecutive connection failures tolerated by stream()
        stale_seconds: Idle seconds before the socket health is checked
        retry_delay: Base delay between reconnects (multiplied by attempt)
        archive_store: Backing store for history()
        session: Pre-built pybit HTTP session
        ws_factory: Callable returning a connected pybit WebSocket
    """

    name = "bybit"

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        use_demo: bool = False,
        category: str = "spot",
        max_retries: int = 3,
        stale_seconds: float = 30.0,
        retry_delay: float = 1.0,
        archive_store: Optional[ArchiveStore] = None,
        session: Optional[HTTP] = None,
        ws_factory: Optional[Callable[[], WebSocket]] = None,
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        self.use_demo = use_demo
        self.category = category
        self.max_retries = max_retries
        self.stale_seconds = stale_seconds
        self.retry_delay = retry_delay
        self.archive_store = archive_store
        self._session = session or HTTP(
            testnet=False,
            demo=use_demo,
            api_key=api_key or None,
            api_secret=api_secret or None,
        )
        self._ws_factory = ws_factory or self._connect_ws

    @classmethod
    def from_config(cls, config: LiveConfig, archive_store: Optional[ArchiveStore] = None) -> "LiveProvider":
        return cls(
            api_key=config.api_key,
            api_secret=config.api_secret,
            use_demo=config.use_demo,
            category=config.category,
            max_retries=config.max_retries,
            stale_seconds=config.stale_seconds,
            archive_store=archive_store,
        )

    def _connect_ws(self) -> WebSocket:
        """Open a public websocket for the configured category."""
        return WebSocket(
            testnet=False,
            channel_type=self.category,
            retries=1,
            restart_on_error=False,
            ping_interval=20,
            ping_timeout=10,
        )

    # ==================== REST ====================

    @handle_pybit_errors
    def balance(self) -> Balance:
        result = _extract_result(self._session.get_wallet_balance(accountType="UNIFIED"))
        balance: Balance = {}
        for account in result.get("list", []):
            for coin in account.get("coin", []):
                amount = coin.get("walletBalance") or "0"
                balance[coin["coin"]] = float(amount)
        return balance

    @handle_pybit_errors
    def symbols(self) -> List[Symbol]:
        result = _extract_result(self._session.get_instruments_info(category=self.category))
        return [
            Symbol(item["baseCoin"], item["quoteCoin"])
            for item in result.get("list", [])
            if item.get("status", "Trading") == "Trading"
        ]

    @handle_pybit_errors
    def time(self) -> int:
        result = _extract_result(self._session.get_server_time())
        server_time_ms = int(result.get("timeNano", "0")) // 1_000_000
        if server_time_ms == 0:
            server_time_ms = int(result.get("timeSecond", "0")) * 1000
        return server_time_ms

    @handle_pybit_errors
    def price(self, *symbols: Symbol) -> Dict[str, float]:
        wanted = {str(s) for s in symbols}
        if len(wanted) == 1:
            response = self._session.get_tickers(category=self.category, symbol=next(iter(wanted)))
        else:
            response = self._session.get_tickers(category=self.category)
        result = _extract_result(response)
        return {
            item["symbol"]: float(item["lastPrice"])
            for item in result.get("list", [])
            if not wanted or item["symbol"] in wanted
        }

    @handle_pybit_errors
    def order(self, symbol: Symbol, order: Order) -> Position:
        """
        Place an order.

        Quote-denominated market orders use Bybit's spot "quoteCoin" market
        unit. The returned Position reports base quantity at the limit price,
        or at the last traded price for market orders.
        """
        params: Dict[str, Any] = {
            "category": self.category,
            "symbol": str(symbol),
            "side": "Buy" if order.side == OrderSide.BUY else "Sell",
            "orderType": "Market" if order.type == OrderType.MARKET else "Limit",
            "qty": str(order.quantity),
        }
        if order.type == OrderType.LIMIT and order.price is not None:
            params["price"] = str(order.price)
        if order.quote and order.type == OrderType.MARKET:
            params["marketUnit"] = "quoteCoin"

        result = _extract_result(self._session.place_order(**params))
        order_id = result.get("orderId", "")

        price = order.price if order.price is not None else self.price(symbol)[str(symbol)]
        quantity = order.quantity / price if order.quote else order.quantity
        logger.trade("ORDER_PLACED", str(symbol), order.side.value, quantity, price, id=order_id)
        return Position(
            id=order_id,
            symbol=symbol,
            side=order.side,
            quantity=quantity,
            price=price,
            time=int(time.time() * 1000),
        )

    def cancel(self, symbol: Symbol, id_or_position: Union[str, Position]) -> bool:
        """
        Cancel an open order.

        Returns False if Bybit rejects the request (e.g. the order already
        filled or does not exist).

        Raises:
            LiveAPIError: On transport level request failures
        """
        order_id = id_or_position.id if isinstance(id_or_position, Position) else id_or_position
        try:
            self._session.cancel_order(category=self.category, symbol=str(symbol), orderId=order_id)
        except InvalidRequestError as e:
            logger.warning(f"Cancel rejected for {symbol} order {order_id}: {e}")
            return False
        except FailedRequestError as e:
            raise LiveAPIError.from_pybit(e) from e
        logger.trade("ORDER_CANCELLED", str(symbol), "-", 0, id=order_id)
        return True

    # ==================== Streams ====================

    def stream(self, pairs: Iterable[Pair]) -> Iterator[StreamItem]:
        """
        Closed klines for the given pairs as they arrive.

        Raises:
            InvalidInterval: Immediately, for intervals Bybit does not stream
            TransportFailure: While iterating, after max_retries consecutive
                connection failures
        """
        subscriptions = [(symbol, interval, to_bybit_interval(interval)) for symbol, interval in pairs]
        return self._stream(subscriptions)

    def _stream(self, subscriptions: List[Tuple[Symbol, str, str]]) -> Iterator[StreamItem]:
        lookup = {(str(symbol), interval): symbol for symbol, interval, _ in subscriptions}
        last_seen: Dict[Tuple[str, str], int] = {}
        failures = 0

        while True:
            messages: "queue.Queue[dict]" = queue.Queue()
            ws = None
            try:
                ws = self._subscribe(subscriptions, messages)
                while True:
                    try:
                        message = messages.get(timeout=self.stale_seconds)
                    except queue.Empty:
                        if not ws.is_connected():
                            raise TransportFailure("websocket disconnected")
                        continue

                    for kline in KlineMessage.from_message(message):
                        if not kline.is_closed:
                            continue
                        key = (kline.symbol, kline.interval)
                        symbol = lookup.get(key)
                        if symbol is None:
                            continue
                        # Reconnects can re-deliver the last closed kline
                        if last_seen.get(key, -1) >= kline.start_time:
                            logger.debug(f"Duplicate kline skipped: {kline.symbol}@{kline.interval} {kline.start_time}")
                            continue
                        last_seen[key] = kline.start_time
                        failures = 0
                        yield symbol, kline.to_candle(), kline.interval
            except TransportFailure as e:
                failures += 1
                if failures >= self.max_retries:
                    logger.error(f"Live stream giving up after {failures} attempts: {e}")
                    raise
                logger.warning(f"Live stream failure ({failures}/{self.max_retries}): {e}; reconnecting")
                time.sleep(self.retry_delay * failures)
            finally:
                if ws is not None:
                    ws.exit()

    def _subscribe(self, subscriptions: List[Tuple[Symbol, str, str]], messages: "queue.Queue[dict]") -> WebSocket:
        """Connect and subscribe every pair, pushing raw messages onto the queue."""
        try:
            ws = self._ws_factory()
        except Exception as e:
            raise TransportFailure(f"connect failed: {e}") from e
        try:
            for symbol, interval, bybit_interval in subscriptions:
                ws.kline_stream(interval=bybit_interval, symbol=str(symbol), callback=messages.put)
                logger.info(f"Subscribed to klines({interval}): {symbol}")
        except Exception as e:
            ws.exit()
            raise TransportFailure(f"subscribe failed: {e}") from e
        return ws

    # ==================== History ====================

    def history(
        self,
        pairs: Iterable[Pair],
        start: TimeLike,
        end: Optional[TimeLike] = None,
    ) -> Iterator[StreamItem]:
        """Archived candles, merged in close-time order by a ReplayEngine."""
        from ..sim.replay import ReplayEngine

        store = self.archive_store or LocalArchiveStore.from_config(get_config().archive)
        return ReplayEngine(store, start, end).history(pairs)
