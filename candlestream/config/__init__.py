"""
Configuration module.
"""

from .config import (
    Config,
    ArchiveConfig,
    RuntimeConfig,
    SimulationConfig,
    LiveConfig,
    LogConfig,
    get_config,
    parse_balance,
    DEFAULT_CACHE_DIR,
    DEFAULT_ARCHIVE_URL,
)

__all__ = [
    "Config",
    "ArchiveConfig",
    "RuntimeConfig",
    "SimulationConfig",
    "LiveConfig",
    "LogConfig",
    "get_config",
    "parse_balance",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_ARCHIVE_URL",
]
