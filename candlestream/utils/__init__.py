"""
Utility modules.
"""

from .logger import get_logger, setup_logger, CandleLogger
from .timeframes import (
    INTERVALS,
    INTERVAL_MS,
    InvalidInterval,
    validate_interval,
    validate_intervals,
    interval_ms,
)
from .time_range import (
    TimeRange,
    to_ms,
    from_ms,
    iter_months,
    last_full_month_end_ms,
)

__all__ = [
    # Logger
    "get_logger",
    "setup_logger",
    "CandleLogger",
    # Intervals
    "INTERVALS",
    "INTERVAL_MS",
    "InvalidInterval",
    "validate_interval",
    "validate_intervals",
    "interval_ms",
    # Time range utilities
    "TimeRange",
    "to_ms",
    "from_ms",
    "iter_months",
    "last_full_month_end_ms",
]
