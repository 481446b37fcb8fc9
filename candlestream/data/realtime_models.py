"""
Normalized real-time market data models.

Converts raw Bybit websocket kline payloads into typed candles. Only the
fields the runtime consumes are kept.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..types import Candle
from ..utils.timeframes import BYBIT_TO_CANONICAL


@dataclass
class KlineMessage:
    """Normalized kline/candlestick update."""
    symbol: str
    interval: str
    start_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    end_time: int = 0
    is_closed: bool = False
    timestamp: float = field(default_factory=time.time)

    @staticmethod
    def _normalize_interval(raw: str) -> str:
        """Convert Bybit interval (e.g., '15', '60', 'D') to canonical ('15m', '1h', '1d')."""
        return BYBIT_TO_CANONICAL.get(raw.upper(), raw)

    @classmethod
    def from_bybit(cls, data: Dict[str, Any], topic: str = "") -> "KlineMessage":
        # Topic format: "kline.{interval}.{symbol}"
        raw_interval = ""
        symbol = ""
        if topic:
            parts = topic.split(".")
            if len(parts) >= 2:
                raw_interval = parts[1]
            if len(parts) >= 3:
                symbol = parts[2]
        raw_interval = raw_interval or str(data.get("interval", ""))
        return cls(
            symbol=symbol or data.get("symbol", ""),
            interval=cls._normalize_interval(raw_interval),
            start_time=int(data.get("start", 0)),
            end_time=int(data.get("end", 0)),
            open=float(data.get("open", 0)),
            high=float(data.get("high", 0)),
            low=float(data.get("low", 0)),
            close=float(data.get("close", 0)),
            volume=float(data.get("volume", 0)),
            is_closed=bool(data.get("confirm", False)),
        )

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> List["KlineMessage"]:
        """Parse every kline in a websocket message ({"topic": ..., "data": [...]})."""
        topic = message.get("topic", "")
        data = message.get("data", [])
        if isinstance(data, dict):
            data = [data]
        return [cls.from_bybit(item, topic) for item in data]

    def to_candle(self) -> Candle:
        return Candle(
            time=self.start_time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )
