"""Data models for the ingestor module."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def now_utc() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PriceSample:
    """A single observed price for one symbol.

    Attributes:
        symbol: Exchange symbol (e.g. "BTCUSDT").
        price: Last traded price, strictly positive for usable samples.
        observed_at: When the price was observed (timezone-aware).
    """

    symbol: str
    price: float
    observed_at: datetime

    @classmethod
    def from_ticker(cls, data: dict[str, Any], *, observed_at: datetime) -> PriceSample:
        """Create a PriceSample from a `/api/v3/ticker/price` row."""
        return cls(
            symbol=str(data["symbol"]).upper(),
            price=float(data["price"]),
            observed_at=observed_at,
        )


@dataclass(frozen=True)
class MarketStat:
    """Rolling 24h market statistics for a symbol.

    Only the latest snapshot is ever used; stats are not retained across
    scan cycles.
    """

    volume_24h: float
    quote_volume_24h: float
    change_24h_pct: float
    high_24h: float
    low_24h: float
    trade_count_24h: int

    @classmethod
    def from_ticker(cls, data: dict[str, Any]) -> MarketStat:
        """Create a MarketStat from a `/api/v3/ticker/24hr` row."""
        return cls(
            volume_24h=float(data.get("volume", 0) or 0),
            quote_volume_24h=float(data.get("quoteVolume", 0) or 0),
            change_24h_pct=float(data.get("priceChangePercent", 0) or 0),
            high_24h=float(data.get("highPrice", 0) or 0),
            low_24h=float(data.get("lowPrice", 0) or 0),
            trade_count_24h=int(data.get("count", 0) or 0),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "volume_24h": self.volume_24h,
            "quote_volume_24h": self.quote_volume_24h,
            "change_24h_pct": self.change_24h_pct,
            "high_24h": self.high_24h,
            "low_24h": self.low_24h,
            "trade_count_24h": self.trade_count_24h,
        }
