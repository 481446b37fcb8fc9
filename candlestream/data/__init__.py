"""
Market data: monthly archive cache and real-time message models.
"""

from .archive_store import (
    ArchiveStore,
    ArchiveUnavailable,
    ArchiveUnit,
    LocalArchiveStore,
    load_kline_csv,
    read_through,
)
from .realtime_models import KlineMessage

__all__ = [
    "ArchiveStore",
    "ArchiveUnavailable",
    "ArchiveUnit",
    "LocalArchiveStore",
    "load_kline_csv",
    "read_through",
    "KlineMessage",
]
