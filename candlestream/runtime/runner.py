"""
Strategy driver.

Pulls (symbol, candle, interval) items from any provider stream, pushes each
into a RuntimeStore and invokes the strategy with a bound RuntimeContext once
the key is ready. The same loop serves live trading and replay: only the
provider differs.
"""

from typing import Callable, Iterable, Optional, Protocol

from ..types import Pair, StreamItem
from ..utils.logger import get_logger
from .context import RuntimeContext
from .store import RuntimeStore

logger = get_logger()

Strategy = Callable[[RuntimeContext], None]


class CandleSource(Protocol):
    """Anything with a candle stream (ExchangeProvider, ReplayEngine)."""

    def stream(self, pairs: Iterable[Pair]) -> Iterable[StreamItem]:
        ...


def run(
    provider: CandleSource,
    store: RuntimeStore,
    pairs: Iterable[Pair],
    strategy: Strategy,
    limit: Optional[int] = None,
) -> int:
    """
    Feed a provider stream through the store into a strategy.

    Args:
        provider: Source whose stream(pairs) yields (symbol, candle, interval)
        store: RuntimeStore receiving every candle
        pairs: (symbol, interval) pairs to subscribe to
        strategy: Called with a RuntimeContext when the pushed key is ready
        limit: Stop after this many candles (None = until the stream ends)

    Returns:
        Number of strategy invocations

    Errors raised by the provider or the strategy propagate unchanged.
    """
    pairs = list(pairs)
    logger.info(f"Runner started: {', '.join(f'{s}@{i}' for s, i in pairs)}")

    candles = 0
    calls = 0
    for symbol, candle, interval in provider.stream(pairs):
        store.push(symbol, candle, interval)
        candles += 1
        if store.is_ready(symbol, interval):
            strategy(store.context(symbol, interval))
            calls += 1
        if limit is not None and candles >= limit:
            break

    logger.info(f"Runner finished: {candles} candles, {calls} strategy calls")
    return calls
