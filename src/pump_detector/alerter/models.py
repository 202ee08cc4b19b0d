"""Data models for the alerter module."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pump_detector.detector.models import PumpEvent


@dataclass(frozen=True)
class Alert:
    """All pumps detected in a single scan cycle.

    Attributes:
        pumps: Pump events in the order the scanner found them.
        alert_id: Unique identifier for this alert.
        created_at: When the cycle produced the alert.
    """

    pumps: tuple[PumpEvent, ...]
    alert_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def total_opportunities(self) -> int:
        return len(self.pumps)

    @property
    def total_potential_profit(self) -> float:
        return sum(p.potential_profit for p in self.pumps)

    def to_dict(self) -> dict[str, object]:
        return {
            "alert_id": self.alert_id,
            "created_at": self.created_at.isoformat(),
            "pumps": [p.to_dict() for p in self.pumps],
            "total_opportunities": self.total_opportunities,
            "total_potential_profit": round(self.total_potential_profit, 2),
        }


@dataclass(frozen=True)
class PerformerStats:
    """Per-symbol aggregate across the retained alerts."""

    symbol: str
    pump_count: int
    max_profit_margin_pct: float
    avg_profit_margin_pct: float
    avg_volume_24h: float

    def to_dict(self) -> dict[str, object]:
        return {
            "symbol": self.symbol,
            "pump_count": self.pump_count,
            "max_profit_margin_pct": round(self.max_profit_margin_pct, 2),
            "avg_profit_margin_pct": round(self.avg_profit_margin_pct, 2),
            "avg_volume_24h": round(self.avg_volume_24h),
        }


@dataclass(frozen=True)
class LedgerSummary:
    total_alerts: int
    total_opportunities: int
    total_potential_profit: float

    def to_dict(self) -> dict[str, object]:
        return {
            "total_alerts": self.total_alerts,
            "total_opportunities": self.total_opportunities,
            "total_potential_profit": round(self.total_potential_profit, 2),
        }


@dataclass(frozen=True)
class LiveSummary:
    """Summary of the most recent alert's pumps."""

    total_pumps: int
    total_potential_profit: float
    high_confidence_pumps: int
    avg_profit_margin_pct: float

    def to_dict(self) -> dict[str, object]:
        return {
            "total_pumps": self.total_pumps,
            "total_potential_profit": round(self.total_potential_profit, 2),
            "high_confidence_pumps": self.high_confidence_pumps,
            "avg_profit_margin_pct": round(self.avg_profit_margin_pct, 2),
        }


@dataclass(frozen=True)
class HistoryStats:
    """Aggregates over a slice of alert history."""

    avg_pumps_per_alert: float
    total_profit_opportunities: float

    def to_dict(self) -> dict[str, object]:
        return {
            "avg_pumps_per_alert": round(self.avg_pumps_per_alert, 1),
            "total_profit_opportunities": round(self.total_profit_opportunities, 2),
        }
