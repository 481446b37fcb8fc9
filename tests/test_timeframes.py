"""
Tests for interval constants and validation.
"""

import pytest

from candlestream.utils.timeframes import (
    BYBIT_INTERVALS,
    INTERVAL_MS,
    INTERVALS,
    InvalidInterval,
    interval_ms,
    to_bybit_interval,
    validate_interval,
    validate_intervals,
)


class TestIntervals:
    """Duration table and validation."""

    def test_every_interval_has_duration(self):
        assert set(INTERVALS) == set(INTERVAL_MS)

    @pytest.mark.parametrize("interval,expected", [
        ("1m", 60_000),
        ("15m", 900_000),
        ("1h", 3_600_000),
        ("8h", 28_800_000),
        ("1d", 86_400_000),
    ])
    def test_interval_ms(self, interval, expected):
        assert interval_ms(interval) == expected

    def test_durations_increase(self):
        durations = [INTERVAL_MS[i] for i in INTERVALS]
        assert durations == sorted(durations)

    @pytest.mark.parametrize("bad", ["3m", "1w", "", "1H", "60"])
    def test_invalid_interval_raises(self, bad):
        with pytest.raises(InvalidInterval):
            validate_interval(bad)

    def test_invalid_interval_is_value_error(self):
        """Callers catching ValueError also catch InvalidInterval."""
        with pytest.raises(ValueError, match="BTCUSDT"):
            validate_interval("2d", "BTCUSDT")

    def test_validate_intervals_preserves_order(self):
        assert validate_intervals(["1h", "1m"]) == ["1h", "1m"]


class TestBybitMapping:
    """Canonical -> Bybit interval conversion."""

    def test_known_mappings(self):
        assert to_bybit_interval("1m") == "1"
        assert to_bybit_interval("1h") == "60"
        assert to_bybit_interval("1d") == "D"

    def test_8h_is_archive_only(self):
        """8h is canonical but Bybit does not stream it."""
        assert "8h" not in BYBIT_INTERVALS
        with pytest.raises(InvalidInterval, match="Bybit"):
            to_bybit_interval("8h")
