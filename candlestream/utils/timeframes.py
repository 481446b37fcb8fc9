"""
Canonical interval constants and validation.

Single source of truth for the supported kline intervals, used by the runtime
(readiness windows), the replay engine (close-time correction) and the live
provider (stream subscription).
"""

from typing import Dict, Iterable, List, Tuple


MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

# Canonical intervals, ordered finest to coarsest
INTERVALS: Tuple[str, ...] = ("1m", "5m", "15m", "30m", "1h", "2h", "4h", "6h", "8h", "12h", "1d")

# Interval -> bar duration in milliseconds (same unit as Candle.time)
INTERVAL_MS: Dict[str, int] = {
    "1m": MINUTE_MS,
    "5m": 5 * MINUTE_MS,
    "15m": 15 * MINUTE_MS,
    "30m": 30 * MINUTE_MS,
    "1h": HOUR_MS,
    "2h": 2 * HOUR_MS,
    "4h": 4 * HOUR_MS,
    "6h": 6 * HOUR_MS,
    "8h": 8 * HOUR_MS,
    "12h": 12 * HOUR_MS,
    "1d": DAY_MS,
}

# Canonical -> Bybit websocket/REST interval
# NOTE: 8h is NOT a valid Bybit interval, it is archive-only
BYBIT_INTERVALS: Dict[str, str] = {
    "1m": "1",
    "5m": "5",
    "15m": "15",
    "30m": "30",
    "1h": "60",
    "2h": "120",
    "4h": "240",
    "6h": "360",
    "12h": "720",
    "1d": "D",
}

# Bybit -> canonical (reverse of BYBIT_INTERVALS)
BYBIT_TO_CANONICAL: Dict[str, str] = {v: k for k, v in BYBIT_INTERVALS.items()}


class InvalidInterval(ValueError):
    """Raised when an interval is outside the supported set."""

    def __init__(self, interval: str, context: str = ""):
        self.interval = interval
        where = f" in {context}" if context else ""
        super().__init__(
            f"Invalid interval: {interval!r}{where}. "
            f"Must be one of: {', '.join(INTERVALS)}"
        )


def validate_interval(interval: str, context: str = "") -> str:
    """
    Validate an interval string.

    Args:
        interval: Interval string (e.g., "1m", "1h", "1d")
        context: Optional description of where the interval came from,
            included in the error message (e.g., a symbol)

    Returns:
        The interval, unchanged

    Raises:
        InvalidInterval: If interval is not canonical
    """
    if interval not in INTERVAL_MS:
        raise InvalidInterval(interval, context)
    return interval


def validate_intervals(intervals: Iterable[str]) -> List[str]:
    """Validate every interval in a collection, preserving order."""
    return [validate_interval(i) for i in intervals]


def interval_ms(interval: str) -> int:
    """
    Get the duration of an interval in milliseconds.

    Raises:
        InvalidInterval: If interval is not canonical
    """
    return INTERVAL_MS[validate_interval(interval)]


def to_bybit_interval(interval: str) -> str:
    """
    Convert a canonical interval to Bybit's format.

    Raises:
        InvalidInterval: If interval is unknown or not streamable on Bybit
    """
    validate_interval(interval)
    try:
        return BYBIT_INTERVALS[interval]
    except KeyError:
        raise InvalidInterval(interval, "Bybit streams") from None
