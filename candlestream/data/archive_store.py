"""
Monthly kline archive store.

Historical candles are stored as one CSV artifact per
(symbol, interval, year, month) unit. LocalArchiveStore keeps those artifacts
in a local cache directory and fills gaps from the public monthly archive
(zip files containing a single CSV).

Layout:
    <cache_dir>/<exchange>/<SYMBOL>-<interval>-<YYYY>-<MM>.csv

Remote:
    <base_url>/<SYMBOL>/<interval>/<SYMBOL>-<interval>-<YYYY>-<MM>.zip
"""

from __future__ import annotations

import os
import shutil
import tempfile
import urllib.error
import urllib.request
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol, Union, runtime_checkable

import numpy as np
import pandas as pd

from ..config.config import DEFAULT_ARCHIVE_URL, DEFAULT_CACHE_DIR, ArchiveConfig
from ..types import Candle, Symbol
from ..utils.logger import get_logger
from ..utils.timeframes import validate_interval

logger = get_logger()

# Open times above this are microseconds (ms epochs stay below it until year 5138)
_MICROSECOND_THRESHOLD = 100_000_000_000_000

_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True)
class ArchiveUnit:
    """
    One monthly archive artifact.

    Attributes:
        symbol: Exchange ticker (e.g., BTCUSDT)
        interval: Canonical interval (e.g., 1h)
        year: Calendar year (UTC)
        month: Calendar month 1-12 (UTC)
    """
    symbol: str
    interval: str
    year: int
    month: int

    def __post_init__(self):
        object.__setattr__(self, "symbol", str(self.symbol).upper())
        validate_interval(self.interval, str(self.symbol))
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1-12, got {self.month}")

    @classmethod
    def of(cls, symbol: Union[Symbol, str], interval: str, year: int, month: int) -> "ArchiveUnit":
        return cls(str(symbol), interval, year, month)

    @property
    def name(self) -> str:
        """Artifact base name: SYMBOL-interval-YYYY-MM."""
        return f"{self.symbol}-{self.interval}-{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.name


class ArchiveUnavailable(Exception):
    """
    Raised when a monthly archive unit can be neither read nor fetched.

    Attributes:
        unit: The archive unit that failed
        reason: Human readable cause
    """

    def __init__(self, unit: ArchiveUnit, reason: str):
        self.unit = unit
        self.reason = reason
        super().__init__(f"Archive {unit} unavailable: {reason}")


@runtime_checkable
class ArchiveStore(Protocol):
    """
    Collaborator contract used by the replay engine.

    Implementations:
    - LocalArchiveStore: CSV cache directory with remote zip download
    """

    def exists(self, unit: ArchiveUnit) -> bool:
        """Whether the artifact for unit is present locally."""
        ...

    def read(self, unit: ArchiveUnit) -> List[Candle]:
        """
        Read all candles of a unit, ascending by open time.

        Raises:
            ArchiveUnavailable: On I/O or parse failure
        """
        ...

    def fetch(self, unit: ArchiveUnit) -> None:
        """
        Retrieve the artifact so that a following read() succeeds.

        Raises:
            ArchiveUnavailable: On network or decompression failure
        """
        ...


class LocalArchiveStore:
    """
    Filesystem archive cache backed by the public monthly kline archive.

    Usage:
        store = LocalArchiveStore(".cache")
        unit = ArchiveUnit("BTCUSDT", "1h", 2024, 1)
        if not store.exists(unit):
            store.fetch(unit)
        candles = store.read(unit)
    """

    def __init__(
        self,
        cache_dir: Union[str, Path] = DEFAULT_CACHE_DIR,
        base_url: str = DEFAULT_ARCHIVE_URL,
        exchange: str = "binance",
        timeout: float = 60.0,
    ):
        self.cache_dir = Path(cache_dir)
        self.base_url = base_url.rstrip("/")
        self.exchange = exchange.lower()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: ArchiveConfig, exchange: str = "binance") -> "LocalArchiveStore":
        return cls(
            cache_dir=config.cache_dir,
            base_url=config.base_url,
            exchange=exchange,
            timeout=config.timeout,
        )

    @property
    def root(self) -> Path:
        return self.cache_dir / self.exchange

    def path(self, unit: ArchiveUnit) -> Path:
        """Local CSV path for a unit."""
        return self.root / f"{unit.name}.csv"

    def url(self, unit: ArchiveUnit) -> str:
        """Remote zip URL for a unit."""
        return f"{self.base_url}/{unit.symbol}/{unit.interval}/{unit.name}.zip"

    def exists(self, unit: ArchiveUnit) -> bool:
        return self.path(unit).is_file()

    def read(self, unit: ArchiveUnit) -> List[Candle]:
        path = self.path(unit)
        try:
            df = load_kline_csv(path)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.error(f"Failed to read archive {unit}: {e}")
            raise ArchiveUnavailable(unit, f"cannot read {path}: {e}") from e

        logger.debug(f"Read {len(df)} candles from {path}")
        return [Candle.from_row(row) for row in df.itertuples(index=False, name=None)]

    def fetch(self, unit: ArchiveUnit) -> None:
        url = self.url(unit)
        target = self.path(unit)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Fetching archive {unit} from {url}")

        with tempfile.TemporaryDirectory(prefix="candlestream-") as temp:
            archive = Path(temp) / f"{unit.name}.zip"
            try:
                with urllib.request.urlopen(url, timeout=self.timeout) as resp, open(archive, "wb") as out:
                    shutil.copyfileobj(resp, out)
            except (urllib.error.URLError, OSError) as e:
                logger.error(f"Download failed for {unit}: {e}")
                raise ArchiveUnavailable(unit, f"download failed: {e}") from e

            try:
                extracted = _extract_csv(archive, Path(temp), unit)
            except (zipfile.BadZipFile, OSError, KeyError) as e:
                logger.error(f"Decompression failed for {unit}: {e}")
                raise ArchiveUnavailable(unit, f"bad archive: {e}") from e

            # Same-filesystem move keeps readers from seeing a partial CSV
            partial = target.with_suffix(".csv.part")
            shutil.copyfile(extracted, partial)
            os.replace(partial, target)

        logger.info(f"Archive {unit} stored at {target}")


def _extract_csv(archive: Path, dest: Path, unit: ArchiveUnit) -> Path:
    """Extract the unit's CSV (or the only CSV) from a zip file."""
    with zipfile.ZipFile(archive) as zf:
        names = [n for n in zf.namelist() if n.lower().endswith(".csv")]
        if not names:
            raise KeyError(f"no CSV member in {archive.name}")
        member = f"{unit.name}.csv" if f"{unit.name}.csv" in names else names[0]
        return Path(zf.extract(member, dest))


def _has_header(path: Union[str, Path]) -> bool:
    """True if the first field of the file is not an integer timestamp."""
    with open(path, "r", encoding="utf-8") as f:
        first = f.readline().split(",", 1)[0].strip()
    return bool(first) and not first.lstrip("-").isdigit()


def load_kline_csv(path: Union[str, Path]) -> pd.DataFrame:
    """
    Load a kline CSV into a DataFrame with columns time, open, high, low, close, volume.

    - A header row, if present, is skipped
    - Only the first six columns are kept
    - Microsecond open times are normalised to milliseconds

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is empty or has fewer than six columns
    """
    raw = pd.read_csv(path, header=None, skiprows=1 if _has_header(path) else 0)
    if raw.shape[1] < 6:
        raise ValueError(f"expected at least 6 columns, got {raw.shape[1]}")

    df = raw.iloc[:, :6].dropna().copy()
    df.columns = _COLUMNS

    time = df["time"].astype(np.int64)
    df["time"] = np.where(time >= _MICROSECOND_THRESHOLD, time // 1000, time)
    return df.sort_values("time", kind="stable").reset_index(drop=True)


def read_through(store: ArchiveStore, unit: ArchiveUnit) -> List[Candle]:
    """
    Read a unit, fetching it first if it is not present locally.

    Raises:
        ArchiveUnavailable: If fetch or read fails
    """
    if not store.exists(unit):
        store.fetch(unit)
    return store.read(unit)
