"""Data models for the detector module."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pump_detector.ingestor.models import MarketStat


class Confidence(str, Enum):
    """Coarse severity tier derived from the profit margin."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class PumpEvent:
    """Signal emitted when a symbol's latest price breaks out of its window.

    Attributes:
        symbol: Symbol the pump was detected on.
        current_price: Price of the newest sample in the window.
        min_price: Lowest price in the window.
        avg_price: Arithmetic mean of prices in the window.
        max_price: Highest price in the window.
        profit_margin_pct: max(change_from_min_pct, change_from_avg_pct).
        potential_profit: Capital * profit_margin_pct / 100.
        change_from_min_pct: Relative move from the window minimum (%).
        change_from_avg_pct: Relative move from the window mean (%).
        volatility_pct: Window range relative to the minimum (%).
        confidence: Severity tier.
        data_point_count: Number of samples the verdict was computed over.
        detected_at: When the detector fired.
        observed_at: Timestamp of the triggering sample.
        market_stat: 24h statistics for the symbol, if available this cycle.
    """

    symbol: str
    current_price: float
    min_price: float
    avg_price: float
    max_price: float
    profit_margin_pct: float
    potential_profit: float
    change_from_min_pct: float
    change_from_avg_pct: float
    volatility_pct: float
    confidence: Confidence
    data_point_count: int
    detected_at: datetime
    observed_at: datetime
    market_stat: MarketStat | None = None

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence == Confidence.HIGH

    @property
    def quote_volume_24h(self) -> float:
        """Return 24h quote volume, or 0.0 when stats were unavailable."""
        return self.market_stat.quote_volume_24h if self.market_stat else 0.0

    def to_dict(self) -> dict[str, object]:
        """Serialize for the query surface."""
        stat = self.market_stat
        return {
            "symbol": self.symbol,
            "current_price": self.current_price,
            "min_price": self.min_price,
            "avg_price": round(self.avg_price, 8),
            "max_price": self.max_price,
            "profit_margin_pct": round(self.profit_margin_pct, 2),
            "potential_profit": round(self.potential_profit, 2),
            "change_from_min_pct": round(self.change_from_min_pct, 2),
            "change_from_avg_pct": round(self.change_from_avg_pct, 2),
            "volatility_pct": round(self.volatility_pct, 2),
            "confidence": self.confidence.value,
            "data_point_count": self.data_point_count,
            "detected_at": self.detected_at.isoformat(),
            "observed_at": self.observed_at.isoformat(),
            "volume_24h": stat.quote_volume_24h if stat else 0,
            "change_24h_pct": stat.change_24h_pct if stat else 0,
            "trades_24h": stat.trade_count_24h if stat else 0,
        }


class DebounceState:
    """Last time a pump fired, per symbol.

    Entries are only written when a PumpEvent is emitted and are never
    evicted; the symbol universe is finite.
    """

    def __init__(self) -> None:
        self._last_fired: dict[str, datetime] = {}

    def last_fired(self, symbol: str) -> datetime | None:
        return self._last_fired.get(symbol)

    def mark(self, symbol: str, fired_at: datetime) -> None:
        self._last_fired[symbol] = fired_at

    def clear(self) -> None:
        self._last_fired.clear()

    def __len__(self) -> int:
        return len(self._last_fired)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._last_fired
