"""
Bounded sliding-window candle store.

RuntimeStore keeps, per (symbol, interval) key, the most recent N candles as
six parallel sequences (time, open, high, low, close, volume), newest first:
index 0 is the latest candle. Pushing beyond the cap evicts the oldest entry,
and all six sequences always have equal length.

The store is fed identically by a live provider or the replay engine; it
does not validate ordering. Producers guarantee strictly increasing time per
key.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from ..analysis.series import ListSeries
from ..config.config import RuntimeConfig
from ..types import Candle, Symbol
from ..utils.logger import get_logger
from ..utils.timeframes import validate_interval
from .context import RuntimeContext

SymbolLike = Union[Symbol, str]

logger = get_logger()


@dataclass
class HistoryOptions:
    """Per-interval window settings."""
    # Kline history length (cap)
    history: int = 100
    # Required history length for readiness
    required: int = 0

    def __post_init__(self):
        if self.history < 1:
            raise ValueError(f"history must be >= 1, got {self.history}")
        if self.required < 0:
            raise ValueError(f"required must be >= 0, got {self.required}")


@dataclass
class RuntimeOptions:
    """
    RuntimeStore configuration.

    Attributes:
        interval: If set, only this interval is ever considered ready.
        history: Interval -> HistoryOptions. Every interval listed here must
            reach its `required` length before any key of the symbol is ready.
        default_history: Cap for intervals not listed in `history`.
        clear_on_reset: Whether reset() also drops stored candles.
    """
    interval: Optional[str] = None
    history: Dict[str, HistoryOptions] = field(default_factory=dict)
    default_history: int = 100
    clear_on_reset: bool = False

    def __post_init__(self):
        if self.interval is not None:
            validate_interval(self.interval, "RuntimeOptions.interval")
        for interval in self.history:
            validate_interval(interval, "RuntimeOptions.history")

    @classmethod
    def from_config(
        cls,
        config: RuntimeConfig,
        intervals: Iterable[str] = (),
        interval: Optional[str] = None,
    ) -> "RuntimeOptions":
        """Build options applying the configured history/required to each interval."""
        return cls(
            interval=interval,
            history={
                i: HistoryOptions(history=config.history, required=config.required)
                for i in intervals
            },
            default_history=config.history,
            clear_on_reset=config.clear_on_reset,
        )


class SeriesSet(NamedTuple):
    """Read-only views over one key's six sequences."""
    time: ListSeries[int]
    open: ListSeries[float]
    high: ListSeries[float]
    low: ListSeries[float]
    close: ListSeries[float]
    volume: ListSeries[float]


class _KeyBuffers:
    """Six parallel bounded deques for one (symbol, interval) key."""

    __slots__ = ("columns", "views")

    def __init__(self, cap: int):
        self.columns: Tuple[Deque, ...] = tuple(deque(maxlen=cap) for _ in range(6))
        self.views = SeriesSet(*(ListSeries(c) for c in self.columns))

    def prepend(self, candle: Candle) -> None:
        # appendleft on a full deque drops the rightmost (oldest) entry
        for column, value in zip(self.columns, candle.as_tuple()):
            column.appendleft(value)

    def __len__(self) -> int:
        return len(self.columns[0])


_EMPTY = SeriesSet(*(ListSeries(()) for _ in range(6)))


def _key(symbol: SymbolLike, interval: str) -> Tuple[str, str]:
    return str(symbol), interval


class RuntimeStore:
    """
    Per-(symbol, interval) sliding windows with readiness checks.

    Usage:
        store = RuntimeStore(RuntimeOptions(history={"1h": HistoryOptions(200, 50)}))
        store.push(symbol, candle, "1h")
        if store.is_ready(symbol, "1h"):
            close = store.series(symbol, "1h").close
    """

    def __init__(self, options: Optional[RuntimeOptions] = None):
        self._options = options or RuntimeOptions()
        self._buffers: Dict[Tuple[str, str], _KeyBuffers] = {}
        self._current: Optional[Tuple[SymbolLike, str]] = None

    @property
    def options(self) -> RuntimeOptions:
        return self._options

    def capacity(self, interval: str) -> int:
        """History cap for an interval."""
        opts = self._options.history.get(interval)
        return opts.history if opts is not None else self._options.default_history

    def push(self, symbol: SymbolLike, candle: Union[Candle, Sequence[float]], interval: str) -> None:
        """
        Prepend a candle to the key's sequences and trim to the cap.

        Also moves the "current" pointer to this (symbol, interval).
        Never fails for a valid candle; ordering is the caller's contract.
        """
        if not isinstance(candle, Candle):
            candle = Candle.from_row(candle)
        key = _key(symbol, interval)
        buffers = self._buffers.get(key)
        if buffers is None:
            buffers = self._buffers[key] = _KeyBuffers(self.capacity(interval))
        buffers.prepend(candle)
        self._current = (symbol, interval)

    def series(self, symbol: SymbolLike, interval: str) -> SeriesSet:
        """
        Read-only views of the key's six sequences.

        Returns empty series if the key has never been pushed to.
        """
        buffers = self._buffers.get(_key(symbol, interval))
        return buffers.views if buffers is not None else _EMPTY

    def length(self, symbol: SymbolLike, interval: str) -> int:
        buffers = self._buffers.get(_key(symbol, interval))
        return len(buffers) if buffers is not None else 0

    def is_ready(self, symbol: SymbolLike, interval: str) -> bool:
        """
        True once enough history exists to evaluate (symbol, interval).

        - With a fixed `interval` option, any other interval is never ready.
        - Every interval listed in `history` must exist for the symbol with
          at least its `required` length.
        """
        if self._options.interval and self._options.interval != interval:
            return False
        for other, opts in self._options.history.items():
            buffers = self._buffers.get(_key(symbol, other))
            if buffers is None:
                return False
            if len(buffers) < opts.required:
                return False
        return True

    def context(self, symbol: SymbolLike, interval: str) -> RuntimeContext:
        """Snapshot handle for strategy code."""
        return RuntimeContext(store=self, symbol=symbol, interval=interval)

    @property
    def current(self) -> Optional[RuntimeContext]:
        """Context of the most recent push, or None after reset()."""
        if self._current is None:
            return None
        return self.context(*self._current)

    def keys(self) -> List[Tuple[str, str]]:
        """Stored (symbol, interval) keys."""
        return list(self._buffers.keys())

    def __contains__(self, key: Tuple[SymbolLike, str]) -> bool:
        return _key(*key) in self._buffers

    def reset(self) -> None:
        """
        Clear the current pointer between runs.

        Stored windows are kept unless options.clear_on_reset is set.
        """
        self._current = None
        if self._options.clear_on_reset:
            self.clear()
        logger.debug(
            f"RuntimeStore reset (clear_on_reset={self._options.clear_on_reset}, "
            f"keys={len(self._buffers)})"
        )

    def clear(self) -> None:
        """Drop all stored windows."""
        self._buffers.clear()
        self._current = None
