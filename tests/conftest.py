"""
Shared fixtures for candlestream tests.

No test touches the network: archive access goes through FakeArchiveStore
and Bybit access through mocks.
"""

from datetime import datetime, timezone
from typing import Dict, List

import pytest

from candlestream.config.config import Config
from candlestream.data.archive_store import ArchiveUnavailable, ArchiveUnit
from candlestream.types import Candle, Symbol


class FakeArchiveStore:
    """
    In-memory ArchiveStore.

    `local` units exist immediately; `remote` units appear after fetch().
    Every call is recorded for assertions.
    """

    def __init__(self):
        self.local: Dict[ArchiveUnit, List[Candle]] = {}
        self.remote: Dict[ArchiveUnit, List[Candle]] = {}
        self.fetch_calls: List[ArchiveUnit] = []
        self.read_calls: List[ArchiveUnit] = []

    def add(self, symbol, interval, year, month, candles, remote=False):
        unit = ArchiveUnit.of(symbol, interval, year, month)
        (self.remote if remote else self.local)[unit] = list(candles)
        return unit

    def exists(self, unit: ArchiveUnit) -> bool:
        return unit in self.local

    def fetch(self, unit: ArchiveUnit) -> None:
        self.fetch_calls.append(unit)
        if unit not in self.remote:
            raise ArchiveUnavailable(unit, "not found upstream")
        self.local[unit] = self.remote[unit]

    def read(self, unit: ArchiveUnit) -> List[Candle]:
        self.read_calls.append(unit)
        if unit not in self.local:
            raise ArchiveUnavailable(unit, "not cached")
        return list(self.local[unit])


def candle(time: int, close: float = 100.0, volume: float = 1.0) -> Candle:
    """Flat candle at `close` opening at `time` (ms)."""
    return Candle(time=time, open=close, high=close, low=close, close=close, volume=volume)


@pytest.fixture
def btc() -> Symbol:
    return Symbol("BTC", "USDT")


@pytest.fixture
def eth() -> Symbol:
    return Symbol("ETH", "USDT")


@pytest.fixture
def fake_archive() -> FakeArchiveStore:
    return FakeArchiveStore()


@pytest.fixture
def make_candle():
    return candle


@pytest.fixture
def fixed_now():
    """Clock pinned to 2024-06-15 UTC, so May 2024 is the last full month."""
    now = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
    return lambda: now


@pytest.fixture
def fresh_config(monkeypatch):
    """Drop the Config singleton so each test loads its own environment."""
    monkeypatch.setattr(Config, "_instance", None)
