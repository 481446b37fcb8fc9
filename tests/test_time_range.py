"""
Tests for TimeRange and calendar month helpers.

Validates that:
1. Naive datetimes are treated as UTC
2. Month walking covers every month touched by a range, across years
3. Ranges are clamped to the last fully elapsed month
"""

from datetime import datetime, timezone

import pytest

from candlestream.utils.time_range import (
    TimeRange,
    from_ms,
    iter_months,
    last_full_month_end_ms,
    month_start_ms,
    next_month,
    to_ms,
)

JAN_2024 = 1_704_067_200_000


class TestConversions:
    """to_ms / from_ms."""

    def test_naive_is_utc(self):
        assert to_ms(datetime(2024, 1, 1)) == JAN_2024

    def test_aware_and_int(self):
        assert to_ms(datetime(2024, 1, 1, tzinfo=timezone.utc)) == JAN_2024
        assert to_ms(JAN_2024) == JAN_2024

    def test_from_ms_roundtrip(self):
        assert from_ms(JAN_2024) == datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestMonths:
    """Calendar month arithmetic."""

    def test_next_month_wraps_year(self):
        assert next_month(2023, 12) == (2024, 1)
        assert next_month(2024, 1) == (2024, 2)

    def test_iter_months_across_year(self):
        start = to_ms(datetime(2023, 11, 20))
        end = to_ms(datetime(2024, 2, 1))

        assert list(iter_months(start, end)) == [(2023, 11), (2023, 12), (2024, 1), (2024, 2)]

    def test_iter_months_empty_when_reversed(self):
        assert list(iter_months(JAN_2024, JAN_2024 - 1)) == []

    def test_last_full_month_end(self):
        now = datetime(2024, 3, 10, tzinfo=timezone.utc)

        assert last_full_month_end_ms(now) == month_start_ms(2024, 3) - 1


class TestTimeRange:
    """TimeRange construction and clamping."""

    def test_negative_start_raises(self):
        with pytest.raises(ValueError, match="must be positive"):
            TimeRange(start_ms=-1, end_ms=10)

    def test_from_dates(self):
        tr = TimeRange.from_dates(datetime(2024, 1, 1), datetime(2024, 1, 2))

        assert tr.start_ms == JAN_2024
        assert tr.end_ms == JAN_2024 + 86_400_000

    def test_clamp_to_archive(self):
        """A range reaching into the current month stops at the previous month's end."""
        now = datetime(2024, 3, 10, tzinfo=timezone.utc)
        tr = TimeRange.from_dates(datetime(2024, 1, 15), datetime(2024, 3, 5))

        clamped = tr.clamp_to_archive(now)

        assert clamped.end_ms == month_start_ms(2024, 3) - 1
        assert list(clamped.months()) == [(2024, 1), (2024, 2)]

    def test_clamp_keeps_earlier_end(self):
        now = datetime(2024, 3, 10, tzinfo=timezone.utc)
        tr = TimeRange(JAN_2024, JAN_2024 + 1000)

        assert tr.clamp_to_archive(now) == tr

    def test_contains_is_inclusive(self):
        tr = TimeRange(10, 20)

        assert tr.contains(10)
        assert tr.contains(20)
        assert not tr.contains(21)

    def test_is_empty(self):
        assert TimeRange(20, 10).is_empty
        assert not TimeRange(10, 10).is_empty
