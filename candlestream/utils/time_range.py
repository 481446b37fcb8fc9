"""
TimeRange abstraction for historical replay queries.

All times are epoch milliseconds (UTC), matching Candle.time.

Monthly archives are the unit of historical storage, so this module also
provides the calendar-month arithmetic used to walk a range one archive at a
time. Only fully elapsed months are archived: a range ending in the current
month is clamped to the last millisecond of the previous month.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional, Tuple, Union

TimeLike = Union[datetime, int, float]


def to_ms(value: TimeLike) -> int:
    """
    Convert a datetime or epoch value to epoch milliseconds.

    Naive datetimes are interpreted as UTC. Integers and floats are taken
    as milliseconds already.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return int(value)


def from_ms(ms: int) -> datetime:
    """Epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def month_start_ms(year: int, month: int) -> int:
    """First millisecond of a calendar month (UTC)."""
    return to_ms(datetime(year, month, 1, tzinfo=timezone.utc))


def next_month(year: int, month: int) -> Tuple[int, int]:
    """The (year, month) following the given one."""
    if month == 12:
        return year + 1, 1
    return year, month + 1


def month_of(ms: int) -> Tuple[int, int]:
    """(year, month) containing the given timestamp."""
    dt = from_ms(ms)
    return dt.year, dt.month


def last_full_month_end_ms(now: Optional[datetime] = None) -> int:
    """
    Last millisecond of the most recent fully elapsed calendar month.

    Args:
        now: Reference time (defaults to the current UTC time)
    """
    now = now or datetime.now(timezone.utc)
    year, month = month_of(to_ms(now))
    return month_start_ms(year, month) - 1


def iter_months(start_ms: int, end_ms: int) -> Iterator[Tuple[int, int]]:
    """
    Yield every (year, month) touched by [start_ms, end_ms], in order.

    Yields nothing if start_ms > end_ms.
    """
    if start_ms > end_ms:
        return
    year, month = month_of(start_ms)
    last = month_of(end_ms)
    while (year, month) <= last:
        yield year, month
        year, month = next_month(year, month)


@dataclass(frozen=True)
class TimeRange:
    """
    Inclusive [start_ms, end_ms] range for historical queries.

    Attributes:
        start_ms: Start timestamp in milliseconds (UTC, inclusive)
        end_ms: End timestamp in milliseconds (UTC, inclusive)

    Usage:
        tr = TimeRange.from_dates(datetime(2024, 1, 1), datetime(2024, 3, 1))
        tr = tr.clamp_to_archive(now)   # drop the unfinished current month
        for year, month in tr.months():
            ...
    """
    start_ms: int
    end_ms: int

    def __post_init__(self):
        if self.start_ms < 0:
            raise ValueError(f"start_ms must be positive, got {self.start_ms}")

    @classmethod
    def from_dates(cls, start: TimeLike, end: Optional[TimeLike] = None) -> "TimeRange":
        """Create from datetimes or epoch ms; a missing end means now."""
        end_ms = to_ms(end) if end is not None else to_ms(datetime.now(timezone.utc))
        return cls(start_ms=to_ms(start), end_ms=end_ms)

    @property
    def is_empty(self) -> bool:
        return self.start_ms > self.end_ms

    def clamp_to_archive(self, now: Optional[datetime] = None) -> "TimeRange":
        """Limit the end to the last fully elapsed month."""
        return TimeRange(self.start_ms, min(self.end_ms, last_full_month_end_ms(now)))

    def contains(self, ms: int) -> bool:
        return self.start_ms <= ms <= self.end_ms

    def months(self) -> Iterator[Tuple[int, int]]:
        """Calendar months touched by this range."""
        return iter_months(self.start_ms, self.end_ms)

    def __str__(self) -> str:
        return f"{from_ms(self.start_ms).isoformat()} -> {from_ms(self.end_ms).isoformat()}"
