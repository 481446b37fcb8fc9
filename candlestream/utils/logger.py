"""
Logging system for candlestream.
Provides human-readable console logs with optional file output.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config.config import get_config


# ANSI color codes for terminal output
class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    BOLD = "\033[1m"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record):
        # Work on a copy so file handlers sharing the record stay uncolored
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        record.msg = f"{color}{record.msg}{Colors.RESET}"
        return super().format(record)


class CandleLogger:
    """
    Central logging system.

    Features:
    - Console output with colors
    - Optional daily file output (plain text)
    - Separate "candlestream.fills" channel for simulated/live fills
    """

    _instance: Optional['CandleLogger'] = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, log_dir: Optional[str] = None, log_level: str = "INFO"):
        if CandleLogger._initialized:
            return

        self.log_dir = Path(log_dir) if log_dir else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_logger = self._create_logger("candlestream", log_level)
        self.fill_logger = self._create_logger("candlestream.fills", log_level, "fills")

        CandleLogger._initialized = True

    def _create_logger(self, name: str, level: str, file_prefix: str = None) -> logging.Logger:
        """Create a configured logger instance."""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper()))
        logger.handlers.clear()
        logger.propagate = False

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s | %(levelname)s | %(message)s",
            datefmt="%H:%M:%S"
        ))
        logger.addHandler(console_handler)

        if self.log_dir is not None:
            prefix = file_prefix or "candlestream"
            log_file = self.log_dir / f"{prefix}_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            logger.addHandler(file_handler)

        return logger

    def info(self, msg: str, *args, **kwargs):
        """Log info message."""
        self.main_logger.info(msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message."""
        self.main_logger.debug(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message."""
        self.main_logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message."""
        self.main_logger.error(msg, *args, **kwargs)

    def trade(self, action: str, symbol: str, side: str, quantity: float,
              price: float = None, **kwargs):
        """
        Log a fill with structured format.

        Args:
            action: e.g. SIM_FILL, ORDER_PLACED, ORDER_CANCELLED
            symbol: Trading symbol (e.g., BTCUSDT)
            side: buy or sell
            quantity: Base quantity
            price: Execution price (optional)
            **kwargs: Additional fields
        """
        parts = [
            f"[{action}]",
            f"symbol={symbol}",
            f"side={side}",
            f"qty={quantity:.8g}",
        ]

        if price:
            parts.append(f"price={price:.8g}")

        for key, value in kwargs.items():
            parts.append(f"{key}={value}")

        self.fill_logger.info(" | ".join(parts))


# Global logger instance
_logger: Optional[CandleLogger] = None


def get_logger(log_dir: Optional[str] = None, log_level: str = "INFO") -> CandleLogger:
    """Get or create the global logger instance."""
    global _logger
    if _logger is None:
        _logger = CandleLogger(log_dir, log_level)
        _configure_third_party_loggers()
    return _logger


def setup_logger(log_dir: Optional[str] = None, log_level: Optional[str] = None) -> CandleLogger:
    """
    Initialize the logger with custom settings.

    With no log_level, LOG_LEVEL and LOG_DIR are taken from the config.
    """
    global _logger
    if log_level is None:
        log_config = get_config().log
        log_level = log_config.level
        log_dir = log_dir or log_config.log_dir or None
    CandleLogger._initialized = False
    CandleLogger._instance = None
    _logger = CandleLogger(log_dir, log_level)
    _configure_third_party_loggers()
    return _logger


def _configure_third_party_loggers():
    """
    Configure third-party library loggers to reduce noise.

    pybit and websocket-client are verbose about reconnection attempts;
    the live provider already reports those at WARNING.
    """
    logging.getLogger("pybit").setLevel(logging.WARNING)
    logging.getLogger("websocket").setLevel(logging.ERROR)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
