"""
Tests for the replay-backed exchange provider.

Validates that:
1. Orders fill at the latest streamed close, with quote conversion,
   explicit prices and slippage
2. cancel() always reports False
3. time() and status mirror the replay engine
4. symbols()/price() require an upstream provider
"""

from unittest.mock import MagicMock

import pytest

from candlestream.config.config import SimulationConfig
from candlestream.data.archive_store import ArchiveUnavailable
from candlestream.exchange.interfaces import ExchangeProvider, Order, OrderSide, OrderType, Position
from candlestream.sim import NOT_STARTED, ReplayStatus, Simulation
from candlestream.utils.time_range import month_start_ms
from candlestream.utils.timeframes import DAY_MS, HOUR_MS

JAN = month_start_ms(2024, 1)


@pytest.fixture
def sim(fake_archive, fixed_now, btc, make_candle):
    fake_archive.add(btc, "1h", 2024, 1, [
        make_candle(JAN, close=100.0),
        make_candle(JAN + HOUR_MS, close=200.0),
    ])
    return Simulation.from_archive(fake_archive, JAN, JAN + DAY_MS, now=fixed_now)


class TestBalanceAndState:
    """Balance, status and time."""

    def test_default_balance(self, sim):
        assert sim.balance() == {"USDT": 1000.0}

    def test_balance_is_a_copy(self, sim):
        sim.balance()["USDT"] = 0

        assert sim.balance() == {"USDT": 1000.0}

    def test_configured_balance(self, fake_archive):
        sim = Simulation.from_config(SimulationConfig(initial_balance={"BTC": 2.0}), fake_archive, JAN)

        assert sim.balance() == {"BTC": 2.0}

    def test_time_and_status_follow_engine(self, sim, btc):
        assert sim.time() == NOT_STARTED
        assert sim.status == ReplayStatus.INITIALIZING

        stream = sim.stream([(btc, "1h")])
        _, candle, _ = next(stream)
        assert sim.time() == candle.time - 1
        assert sim.status == ReplayStatus.RUNNING

        list(stream)
        assert sim.time() == NOT_STARTED
        assert sim.status == ReplayStatus.STOPPED

    def test_error_status(self, fake_archive, fixed_now, eth):
        sim = Simulation.from_archive(fake_archive, JAN, JAN + DAY_MS, now=fixed_now)

        with pytest.raises(ArchiveUnavailable):
            list(sim.stream([(eth, "1h")]))

        assert sim.status == ReplayStatus.ERROR

    def test_reset(self, sim, btc):
        next(sim.stream([(btc, "1h")]))

        sim.reset()

        assert sim.status == ReplayStatus.INITIALIZING
        assert sim.last_close(btc) is None

    def test_satisfies_provider_protocol(self, sim):
        assert isinstance(sim, ExchangeProvider)


class TestOrders:
    """Immediate fills at the latest observed close."""

    def test_order_before_any_candle_raises(self, sim, btc):
        with pytest.raises(ValueError, match="No price observed"):
            sim.order(btc, Order(side="buy", quantity=1))

    def test_fill_at_latest_close(self, sim, btc):
        for _ in sim.stream([(btc, "1h")]):
            pass

        position = sim.order(btc, Order(side=OrderSide.SELL, quantity=0.5))

        assert isinstance(position, Position)
        assert position.price == 200.0
        assert position.quantity == 0.5
        assert position.side == OrderSide.SELL
        assert position.symbol == btc

    def test_fill_tracks_stream_progress(self, sim, btc):
        stream = sim.stream([(btc, "1h")])
        next(stream)

        position = sim.order(btc, Order(side="buy", quantity=1))

        assert position.price == 100.0
        assert position.time == JAN - 1

    def test_quote_quantity_converted_to_base(self, sim, btc):
        list(sim.stream([(btc, "1h")]))

        position = sim.order(btc, Order(side="buy", quantity=50, quote=True))

        assert position.quantity == pytest.approx(0.25)
        assert position.price == 200.0
        assert position.notional == pytest.approx(50)

    def test_quote_ignores_explicit_price(self, sim, btc):
        list(sim.stream([(btc, "1h")]))

        position = sim.order(btc, Order(side="buy", quantity=100, quote=True, price=1.0))

        assert position.price == 200.0
        assert position.quantity == pytest.approx(0.5)

    def test_limit_price_honoured(self, sim, btc):
        list(sim.stream([(btc, "1h")]))

        position = sim.order(btc, Order(side="buy", quantity=2, type=OrderType.LIMIT, price=150.0))

        assert position.price == 150.0
        assert position.quantity == 2

    def test_slippage_against_taker(self, sim, btc):
        list(sim.stream([(btc, "1h")]))

        buy = sim.order(btc, Order(side="buy", quantity=1, slippage=0.01))
        sell = sim.order(btc, Order(side="sell", quantity=1, slippage=0.01))

        assert buy.price == pytest.approx(202.0)
        assert sell.price == pytest.approx(198.0)
        assert buy.slippage == 0.01

    def test_position_ids_unique(self, sim, btc):
        list(sim.stream([(btc, "1h")]))

        ids = {sim.order(btc, Order(side="buy", quantity=1)).id for _ in range(3)}

        assert len(ids) == 3

    def test_cancel_always_false(self, sim, btc):
        list(sim.stream([(btc, "1h")]))
        position = sim.order(btc, Order(side="buy", quantity=1))

        assert sim.cancel(btc, position) is False
        assert sim.cancel(btc, "any-id") is False


class TestOrderValidation:
    """Order construction."""

    def test_non_positive_quantity(self):
        with pytest.raises(ValueError, match="quantity"):
            Order(side="buy", quantity=0)

    def test_limit_requires_price(self):
        with pytest.raises(ValueError, match="price"):
            Order(side="buy", quantity=1, type="LIMIT")

    def test_unknown_side(self):
        with pytest.raises(ValueError):
            Order(side="hold", quantity=1)


class TestUpstreamDelegation:
    """symbols() and price() come from the upstream provider."""

    def test_without_upstream(self, sim, btc):
        with pytest.raises(RuntimeError, match="upstream provider"):
            sim.symbols()
        with pytest.raises(RuntimeError, match="upstream provider"):
            sim.price(btc)

    def test_with_upstream(self, fake_archive, btc):
        upstream = MagicMock()
        upstream.symbols.return_value = [btc]
        upstream.price.return_value = {"BTCUSDT": 42.0}
        sim = Simulation.from_archive(fake_archive, JAN, upstream=upstream)

        assert sim.symbols() == [btc]
        assert sim.price(btc) == {"BTCUSDT": 42.0}
        upstream.price.assert_called_once_with(btc)

    def test_history_delegates_to_engine(self, sim, btc):
        items = list(sim.history([(btc, "1h")], JAN, JAN + DAY_MS))

        assert len(items) == 2
        assert sim.status == ReplayStatus.INITIALIZING
