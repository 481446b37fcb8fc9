"""
Configuration management for candlestream.
Loads settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv


DEFAULT_CACHE_DIR = ".cache"
DEFAULT_ARCHIVE_URL = "https://data.binance.vision/data/spot/monthly/klines"


@dataclass
class ArchiveConfig:
    """Monthly kline archive cache."""
    cache_dir: str = DEFAULT_CACHE_DIR
    base_url: str = DEFAULT_ARCHIVE_URL
    timeout: float = 60.0


@dataclass
class RuntimeConfig:
    """
    Defaults for RuntimeStore windows.

    clear_on_reset decides whether RuntimeStore.reset() also drops the
    stored per-key history (False keeps readiness across replay runs).
    """
    history: int = 100
    required: int = 0
    clear_on_reset: bool = False


@dataclass
class SimulationConfig:
    """Replay exchange settings."""
    initial_balance: Dict[str, float] = field(default_factory=lambda: {"USDT": 1000.0})


@dataclass
class LiveConfig:
    """
    Bybit connection settings for the live provider.

    Public market data (klines, tickers, instruments) needs no keys;
    balance/order/cancel require api_key/api_secret.
    """
    api_key: str = ""
    api_secret: str = ""
    use_demo: bool = False
    category: str = "spot"
    max_retries: int = 3
    stale_seconds: float = 30.0

    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)


@dataclass
class LogConfig:
    """Logging configuration. An empty log_dir logs to console only."""
    level: str = "INFO"
    log_dir: str = ""


def parse_balance(value: str) -> Dict[str, float]:
    """
    Parse a balance string of the form "USDT:1000,BTC:0.1".

    Raises:
        ValueError: If an entry is not ASSET:amount
    """
    balance: Dict[str, float] = {}
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        asset, sep, amount = entry.partition(":")
        if not sep or not asset.strip():
            raise ValueError(f"Invalid balance entry {entry!r}, expected ASSET:amount")
        balance[asset.strip().upper()] = float(amount)
    return balance


class Config:
    """
    Central configuration manager.

    Loads configuration from environment variables and provides
    typed access to all settings.
    """

    _instance: Optional['Config'] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, env_file: str = ".env"):
        if self._initialized:
            return

        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path, override=True)

        self.archive = self._load_archive_config()
        self.runtime = self._load_runtime_config()
        self.simulation = self._load_simulation_config()
        self.live = self._load_live_config()
        self.log = self._load_log_config()

        self._initialized = True

    def _load_archive_config(self) -> ArchiveConfig:
        """Load archive cache configuration from environment."""
        return ArchiveConfig(
            cache_dir=os.getenv("CANDLESTREAM_CACHE_DIR", DEFAULT_CACHE_DIR),
            base_url=os.getenv("CANDLESTREAM_ARCHIVE_URL", DEFAULT_ARCHIVE_URL).rstrip("/"),
            timeout=float(os.getenv("CANDLESTREAM_ARCHIVE_TIMEOUT", "60")),
        )

    def _load_runtime_config(self) -> RuntimeConfig:
        """Load runtime window defaults from environment."""
        return RuntimeConfig(
            history=int(os.getenv("RUNTIME_HISTORY", "100")),
            required=int(os.getenv("RUNTIME_REQUIRED", "0")),
            clear_on_reset=os.getenv("RUNTIME_CLEAR_ON_RESET", "false").lower() == "true",
        )

    def _load_simulation_config(self) -> SimulationConfig:
        """Load replay exchange settings from environment."""
        return SimulationConfig(
            initial_balance=parse_balance(os.getenv("SIM_INITIAL_BALANCE", "USDT:1000")),
        )

    def _load_live_config(self) -> LiveConfig:
        """Load live provider settings from environment."""
        return LiveConfig(
            api_key=os.getenv("BYBIT_API_KEY", ""),
            api_secret=os.getenv("BYBIT_API_SECRET", ""),
            use_demo=os.getenv("BYBIT_USE_DEMO", "false").lower() == "true",
            category=os.getenv("BYBIT_CATEGORY", "spot"),
            max_retries=int(os.getenv("LIVE_MAX_RETRIES", "3")),
            stale_seconds=float(os.getenv("LIVE_STALE_SECONDS", "30")),
        )

    def _load_log_config(self) -> LogConfig:
        """Load logging configuration from environment."""
        return LogConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", ""),
        )

    def reload(self, env_file: str = ".env"):
        """Reload configuration from environment."""
        self._initialized = False
        self.__init__(env_file)


def get_config(env_file: str = ".env") -> Config:
    """Get or create the global config instance."""
    return Config(env_file)
