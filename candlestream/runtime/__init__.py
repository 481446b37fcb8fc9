"""
Runtime layer: sliding candle windows and the strategy driver.
"""

from .context import RuntimeContext
from .runner import run
from .store import HistoryOptions, RuntimeOptions, RuntimeStore, SeriesSet

__all__ = [
    "RuntimeStore",
    "RuntimeOptions",
    "HistoryOptions",
    "SeriesSet",
    "RuntimeContext",
    "run",
]
