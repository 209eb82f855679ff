"""OHLCV kline records and the per-interval chart payload.

The service sends prices and volume as numeric strings and times as epoch
milliseconds::

    {"kline": {"15m": [{"open_time": 1700000000000, "open": "50000.1", ...}]}}

Both types are immutable so a payload can be handed to the renderer and
kept around without copying.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

# 9999-12-31T23:59:59Z, the last instant datetime can represent
MAX_OPEN_TIME_MS = 253_402_300_799_000


@dataclass(frozen=True, slots=True)
class Kline:
    """A single OHLCV candlestick bar.

    Parameters
    ----------
    open_time:
        Bar open time as a Unix epoch in **milliseconds**.
    open, high, low, close:
        Price values for the bar.
    volume:
        Traded volume in the base asset during this bar.
    close_time:
        Bar close time in milliseconds, ``0`` when the service omits it.
    """

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int = 0

    @classmethod
    def from_api(cls, raw: Mapping[str, Any]) -> Kline:
        """Build from one wire record.

        Raises :class:`KeyError`, :class:`TypeError`, :class:`OverflowError`
        or :class:`ValueError` when a field is missing or not numeric. Prices
        and volume must be finite and ``open_time`` must fall between the
        epoch and year 9999.
        """
        bar = cls(
            open_time=int(raw["open_time"]),
            open=float(raw["open"]),
            high=float(raw["high"]),
            low=float(raw["low"]),
            close=float(raw["close"]),
            volume=float(raw["volume"]),
            close_time=int(raw.get("close_time") or 0),
        )
        if not 0 <= bar.open_time <= MAX_OPEN_TIME_MS:
            raise ValueError(f"open_time {bar.open_time} out of range")
        if not all(math.isfinite(v) for v in (bar.open, bar.high, bar.low, bar.close, bar.volume)):
            raise ValueError("non-finite price or volume")
        return bar

    @property
    def opened_at(self) -> datetime:
        """Open time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.open_time / 1000.0, tz=timezone.utc)

    @property
    def is_bullish(self) -> bool:
        """``True`` if the close is at or above the open."""
        return self.close >= self.open


@dataclass(frozen=True)
class ChartData:
    """Klines keyed by interval label (``"1h"``), oldest first."""

    klines: dict[str, tuple[Kline, ...]] = field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: Any) -> ChartData | None:
        """Parse a ``chart_data`` object.

        Returns ``None`` when *raw* is missing or carries no usable klines.
        Malformed records are skipped; intervals left empty are dropped.
        """
        if not isinstance(raw, Mapping):
            return None
        by_interval = raw.get("kline")
        if not isinstance(by_interval, Mapping):
            return None

        parsed: dict[str, tuple[Kline, ...]] = {}
        for interval, records in by_interval.items():
            if not isinstance(records, list):
                continue
            bars: list[Kline] = []
            for record in records:
                if not isinstance(record, Mapping):
                    continue
                try:
                    bars.append(Kline.from_api(record))
                except (KeyError, TypeError, ValueError, OverflowError) as exc:
                    logger.debug("Skipping malformed kline %r: %s", record, exc)
            if bars:
                parsed[str(interval)] = tuple(sorted(bars, key=lambda k: k.open_time))
            else:
                logger.warning("No kline data for interval: %s", interval)

        return cls(klines=parsed) if parsed else None

    def __iter__(self) -> Iterator[str]:
        return iter(self.klines)

    def __len__(self) -> int:
        return len(self.klines)

    def intervals(self) -> tuple[str, ...]:
        return tuple(self.klines)

    def get(self, interval: str) -> tuple[Kline, ...]:
        return self.klines.get(interval, ())
