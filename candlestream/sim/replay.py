"""
Historical replay engine.

Walks a time range one calendar month at a time, reads each requested
(symbol, interval) pair's monthly archive through an ArchiveStore (fetching
missing units), and emits candles in the order they would have become
observable live: by close time, i.e. open_time + interval duration.

Within a month the per-pair candle lists are k-way merged with heapq.merge,
so only one month of candles for the requested pairs is held in memory.
Candles of month M close no later than the first candle of month M+1
closes, so concatenating month batches keeps the global order.

An early-stopped stream remembers the merge key (close time, pair index) of
the last candle it delivered; the next stream skips everything up to it.

State machine:
    INITIALIZING -> RUNNING -> STOPPED | ERROR
    reset() returns to INITIALIZING from any state.
"""

from __future__ import annotations

import heapq
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from ..data.archive_store import ArchiveStore, ArchiveUnavailable, ArchiveUnit, read_through
from ..types import Candle, Pair, StreamItem
from ..utils.logger import get_logger
from ..utils.time_range import TimeLike, TimeRange, last_full_month_end_ms, to_ms
from ..utils.timeframes import interval_ms, validate_interval

logger = get_logger()

# Cursor value before the first emission and after a completed run
NOT_STARTED = -1

Clock = Callable[[], datetime]

# (close time, pair index): total order of merged entries within one run
MergeKey = Tuple[int, int]


class ReplayStatus(str, Enum):
    INITIALIZING = "INITIALIZING"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    ERROR = "ERROR"


class ReplayFault(Exception):
    """Raised for any non-archive failure while merging or emitting candles."""


def validate_pairs(pairs: Iterable[Pair]) -> List[Pair]:
    """
    Materialize and validate (symbol, interval) pairs.

    Raises:
        InvalidInterval: If any interval is unsupported
    """
    result = []
    for symbol, interval in pairs:
        validate_interval(interval, str(symbol))
        result.append((symbol, interval))
    return result


class ReplayEngine:
    """
    Stateful close-time-ordered replay over monthly archives.

    Args:
        archive_store: ArchiveStore providing monthly units
        start: Replay range start (datetime or epoch ms, inclusive)
        end: Replay range end (inclusive). None means "up to the last fully
            elapsed month".
        now: Clock used to determine the last fully elapsed month
            (defaults to the system UTC clock)

    Usage:
        engine = ReplayEngine(LocalArchiveStore(".cache"), datetime(2024, 1, 1))
        for symbol, candle, interval in engine.stream([(btc, "1h"), (eth, "15m")]):
            store.push(symbol, candle, interval)
    """

    def __init__(
        self,
        archive_store: ArchiveStore,
        start: TimeLike,
        end: Optional[TimeLike] = None,
        now: Optional[Clock] = None,
    ):
        self.archive_store = archive_store
        self.start_ms = to_ms(start)
        self.end_ms = to_ms(end) if end is not None else None
        self._now = now
        self._status = ReplayStatus.INITIALIZING
        self._cursor = NOT_STARTED
        self._resume_key: Optional[MergeKey] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def status(self) -> ReplayStatus:
        return self._status

    @property
    def cursor(self) -> int:
        """Open time - 1 of the latest emitted candle, or NOT_STARTED."""
        return self._cursor

    def _set_status(self, status: ReplayStatus) -> None:
        if status != self._status:
            logger.debug(f"Replay status {self._status.value} -> {status.value}")
            self._status = status

    def reset(self) -> None:
        """Return to INITIALIZING and forget the cursor."""
        self._set_status(ReplayStatus.INITIALIZING)
        self._cursor = NOT_STARTED
        self._resume_key = None

    def time_range(self, start: Optional[TimeLike] = None, end: Optional[TimeLike] = None) -> TimeRange:
        """
        Effective inclusive range, clamped to the last fully elapsed month.

        Args:
            start: Overrides the configured start
            end: Overrides the configured end
        """
        now = self._now() if self._now is not None else None
        start_ms = to_ms(start) if start is not None else self.start_ms
        if end is not None:
            end_ms = to_ms(end)
        elif self.end_ms is not None:
            end_ms = self.end_ms
        else:
            end_ms = last_full_month_end_ms(now)
        return TimeRange(start_ms, end_ms).clamp_to_archive(now)

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def history(
        self,
        pairs: Iterable[Pair],
        start: Optional[TimeLike] = None,
        end: Optional[TimeLike] = None,
    ) -> Iterator[StreamItem]:
        """
        Stateless merge over [start, end]; does not touch status or cursor.

        Raises:
            InvalidInterval: Immediately, before any archive access
            ArchiveUnavailable: While iterating, if a unit cannot be read or fetched
            ReplayFault: While iterating, for any other failure
        """
        pairs = validate_pairs(pairs)
        return (item for _, item in self._merge(pairs, self.time_range(start, end)))

    def stream(self, pairs: Iterable[Pair]) -> Iterator[StreamItem]:
        """
        Replay the configured range, tracking status and cursor.

        If a previous stream stopped early (the consumer stopped pulling),
        the next call resumes after the last delivered (close time, pair)
        entry, so coarser candles still open at that point are not lost.
        Resuming expects the same pairs in the same order.
        A completed stream ends in STOPPED with the cursor reset.

        Raises:
            InvalidInterval: Immediately, before any archive access
            ArchiveUnavailable: While iterating; status becomes ERROR
            ReplayFault: While iterating; status becomes ERROR
        """
        pairs = validate_pairs(pairs)
        return self._run(pairs)

    def _run(self, pairs: List[Pair]) -> Iterator[StreamItem]:
        time_range = self.time_range()
        resume_after = self._resume_key
        self._set_status(ReplayStatus.RUNNING)
        if resume_after is None:
            logger.info(f"Replay started: {len(pairs)} pairs, {time_range}")
        else:
            logger.info(f"Replay resumed after close time {resume_after[0]}: {len(pairs)} pairs, {time_range}")

        emitted = 0
        try:
            for key, item in self._merge(pairs, time_range, resume_after):
                self._cursor = max(self._cursor, item[1].time - 1)
                self._resume_key = key
                emitted += 1
                yield item
        except (ArchiveUnavailable, ReplayFault) as e:
            self._set_status(ReplayStatus.ERROR)
            logger.error(f"Replay failed after {emitted} candles: {e}")
            raise

        self._set_status(ReplayStatus.STOPPED)
        self._cursor = NOT_STARTED
        self._resume_key = None
        logger.info(f"Replay finished: {emitted} candles")

    def _merge(
        self,
        pairs: List[Pair],
        time_range: TimeRange,
        after: Optional[MergeKey] = None,
    ) -> Iterator[Tuple[MergeKey, StreamItem]]:
        """
        Merged (key, item) entries over time_range, month by month.

        With `after`, entries whose merge key is not greater are skipped. Months
        are walked from the earliest open time that can still close after it.
        """
        walk = time_range
        if after is not None:
            longest = max((interval_ms(interval) for _, interval in pairs), default=0)
            walk = TimeRange(max(time_range.start_ms, after[0] - longest), time_range.end_ms)

        for year, month in walk.months():
            batch = self._month_batch(pairs, time_range, year, month)
            if after is not None:
                batch = [entry for entry in batch if entry[0] > after]
            logger.debug(f"Replay {year:04d}-{month:02d}: {len(batch)} candles")
            yield from batch

    def _month_batch(
        self, pairs: List[Pair], time_range: TimeRange, year: int, month: int
    ) -> List[Tuple[MergeKey, StreamItem]]:
        """Read, filter and merge one month of candles for all pairs."""
        try:
            lanes = []
            for index, (symbol, interval) in enumerate(pairs):
                unit = ArchiveUnit.of(symbol, interval, year, month)
                candles = read_through(self.archive_store, unit)
                lanes.append(_lane(index, symbol, interval, candles, time_range))
            # Keys are (close time, pair index), so ties resolve in pair order
            return list(heapq.merge(*lanes, key=lambda entry: entry[0]))
        except ArchiveUnavailable:
            raise
        except Exception as e:
            raise ReplayFault(f"Replay of {year:04d}-{month:02d} failed: {e}") from e


def _lane(
    index: int, symbol, interval: str, candles: Iterable[Candle], time_range: TimeRange
) -> List[Tuple[MergeKey, StreamItem]]:
    """One pair's in-range candles keyed by (close time, pair index), ascending."""
    duration = interval_ms(interval)
    kept = sorted((c for c in candles if time_range.contains(c.time)), key=lambda c: c.time)
    return [((c.time + duration, index), (symbol, c, interval)) for c in kept]
