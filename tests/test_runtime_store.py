"""
Tests for RuntimeStore and RuntimeContext.

Validates that:
1. Windows are newest-first and capped at the configured history
2. All six sequences stay the same length after every push
3. is_ready waits for every configured interval, then stays true
4. reset() clears the current pointer, and stored windows only on request
5. RuntimeContext reads the bound key and derives calendar fields in UTC
"""

from datetime import datetime, timezone

import pytest

from candlestream.config.config import RuntimeConfig
from candlestream.runtime import HistoryOptions, RuntimeContext, RuntimeOptions, RuntimeStore
from candlestream.types import Candle
from candlestream.utils.time_range import to_ms
from candlestream.utils.timeframes import HOUR_MS, InvalidInterval


def push_many(store, symbol, interval, count, start=0, step=HOUR_MS):
    for n in range(count):
        t = start + n * step
        store.push(symbol, Candle(t, n, n + 1, n - 1, n + 0.5, 10 * n), interval)


class TestWindows:
    """Bounded newest-first windows."""

    def test_cap_evicts_oldest(self, btc):
        """Pushing N+1 candles keeps exactly N, newest first."""
        store = RuntimeStore(RuntimeOptions(history={"1h": HistoryOptions(history=3)}))

        push_many(store, btc, "1h", 4)
        series = store.series(btc, "1h")

        assert store.length(btc, "1h") == 3
        assert list(series.time) == [3 * HOUR_MS, 2 * HOUR_MS, HOUR_MS]
        assert series.close.at(0) == 3.5

    def test_parallel_sequences_equal_length(self, btc):
        """time/open/high/low/close/volume always have the same length."""
        store = RuntimeStore(RuntimeOptions(default_history=5))

        for n in range(8):
            push_many(store, btc, "1m", 1, start=n * 60_000)
            lengths = {len(s) for s in store.series(btc, "1m")}
            assert lengths == {min(n + 1, 5)}

    def test_default_history_for_unlisted_interval(self, btc):
        store = RuntimeStore(RuntimeOptions(default_history=2))

        push_many(store, btc, "4h", 5)

        assert store.capacity("4h") == 2
        assert store.length(btc, "4h") == 2

    def test_unknown_key_is_empty(self, btc):
        """series() of a never-pushed key is empty, not an error."""
        store = RuntimeStore()

        series = store.series(btc, "1d")

        assert series.close.length == 0
        assert series.close.at(0) is None
        assert (btc, "1d") not in store

    def test_push_accepts_rows(self, btc):
        """A plain [time, o, h, l, c, v] row is accepted."""
        store = RuntimeStore()

        store.push(btc, [0, 1, 2, 0.5, 1.5, 100], "1m")

        assert store.series(btc, "1m").volume.at(0) == 100.0
        assert (btc, "1m") in store

    def test_keys_are_per_symbol_and_interval(self, btc, eth):
        store = RuntimeStore()

        push_many(store, btc, "1m", 1)
        push_many(store, eth, "1m", 1)
        push_many(store, btc, "1h", 1)

        assert sorted(store.keys()) == [("BTCUSDT", "1h"), ("BTCUSDT", "1m"), ("ETHUSDT", "1m")]

    def test_symbol_and_ticker_address_same_key(self, btc):
        store = RuntimeStore()

        push_many(store, btc, "1m", 2)

        assert store.length("BTCUSDT", "1m") == 2


class TestReadiness:
    """is_ready semantics."""

    def test_waits_for_every_configured_interval(self, btc):
        """Ready only after all listed intervals reach `required`, then monotonic."""
        store = RuntimeStore(RuntimeOptions(history={
            "1m": HistoryOptions(history=10, required=3),
            "1h": HistoryOptions(history=10, required=1),
        }))

        readiness = []
        for n in range(3):
            push_many(store, btc, "1m", 1, start=n * 60_000)
            readiness.append(store.is_ready(btc, "1m"))
        assert readiness == [False, False, False]

        push_many(store, btc, "1h", 1)
        assert store.is_ready(btc, "1m")

        for n in range(3, 15):
            push_many(store, btc, "1m", 1, start=n * 60_000)
            assert store.is_ready(btc, "1m")

    def test_other_symbol_not_ready(self, btc, eth):
        store = RuntimeStore(RuntimeOptions(history={"1m": HistoryOptions(required=1)}))

        push_many(store, btc, "1m", 1)

        assert store.is_ready(btc, "1m")
        assert not store.is_ready(eth, "1m")

    def test_fixed_interval_option(self, btc):
        """With options.interval set, other intervals are never ready."""
        store = RuntimeStore(RuntimeOptions(interval="1h"))

        push_many(store, btc, "1m", 5)
        push_many(store, btc, "1h", 5)

        assert not store.is_ready(btc, "1m")
        assert store.is_ready(btc, "1h")

    def test_no_history_options_is_ready(self, btc):
        assert RuntimeStore().is_ready(btc, "1m")


class TestOptions:
    """Option validation and config mapping."""

    def test_invalid_history_interval(self):
        with pytest.raises(InvalidInterval):
            RuntimeOptions(history={"3m": HistoryOptions()})

    def test_invalid_fixed_interval(self):
        with pytest.raises(InvalidInterval):
            RuntimeOptions(interval="1w")

    def test_invalid_history_values(self):
        with pytest.raises(ValueError, match="history"):
            HistoryOptions(history=0)
        with pytest.raises(ValueError, match="required"):
            HistoryOptions(required=-1)

    def test_from_config(self):
        config = RuntimeConfig(history=50, required=20, clear_on_reset=True)

        options = RuntimeOptions.from_config(config, intervals=["1m", "1h"])

        assert options.history["1h"].history == 50
        assert options.history["1m"].required == 20
        assert options.default_history == 50
        assert options.clear_on_reset is True


class TestReset:
    """reset() and the current pointer."""

    def test_current_follows_last_push(self, btc, eth):
        store = RuntimeStore()
        assert store.current is None

        push_many(store, btc, "1m", 1)
        push_many(store, eth, "1h", 1)

        assert store.current.symbol == eth
        assert store.current.interval == "1h"

    def test_reset_keeps_windows_by_default(self, btc):
        store = RuntimeStore()
        push_many(store, btc, "1m", 3)

        store.reset()

        assert store.current is None
        assert store.length(btc, "1m") == 3

    def test_reset_clears_when_configured(self, btc):
        store = RuntimeStore(RuntimeOptions(clear_on_reset=True))
        push_many(store, btc, "1m", 3)

        store.reset()

        assert store.current is None
        assert store.length(btc, "1m") == 0
        assert store.keys() == []


class TestRuntimeContext:
    """Context bound to one key."""

    def test_series_properties(self, btc):
        store = RuntimeStore()
        push_many(store, btc, "1h", 3)

        ctx = store.context(btc, "1h")

        assert isinstance(ctx, RuntimeContext)
        assert ctx.close.at(0) == 2.5
        assert ctx.open.at(0) == 2
        assert ctx.high.at(0) == 3
        assert ctx.low.at(0) == 1
        assert ctx.volume.at(-1) == 0
        assert ctx.time.length == 3
        assert ctx.is_ready

    def test_cross_key_lookup(self, btc, eth):
        store = RuntimeStore()
        push_many(store, btc, "1h", 2)
        push_many(store, btc, "4h", 1)
        push_many(store, eth, "1h", 4)

        ctx = store.context(btc, "1h")

        assert ctx.series("4h").close.length == 1
        assert ctx.series(eth, "1h").close.length == 4

    def test_calendar_fields_utc(self, btc):
        """2024-01-07 is a Sunday (day 0)."""
        store = RuntimeStore()
        t = to_ms(datetime(2024, 1, 7, 23, 0, tzinfo=timezone.utc))
        store.push(btc, Candle(t, 1, 1, 1, 1, 1), "1h")

        ctx = store.current

        assert ctx.timestamp == t
        assert ctx.day == 0
        assert ctx.month == 1
        assert ctx.year == 2024

    def test_calendar_fields_empty(self, btc):
        ctx = RuntimeStore().context(btc, "1m")

        assert ctx.timestamp is None
        assert ctx.day is None
        assert ctx.month is None
        assert ctx.year is None
