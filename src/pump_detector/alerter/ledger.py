"""Bounded in-memory ledger of pump alerts.

The ledger keeps the most recent `max_alerts` alerts in insertion order and
derives the analytics served by the query surface. Eviction is strictly
first-in first-out; alert content never affects what is kept.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from pump_detector.alerter.models import (
    Alert,
    HistoryStats,
    LedgerSummary,
    LiveSummary,
    PerformerStats,
)
from pump_detector.detector.models import PumpEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_ALERTS = 100
DEFAULT_TOP_PERFORMERS_LIMIT = 10


class AlertLedger:
    """FIFO-bounded collection of alerts.

    Example:
        ```python
        ledger = AlertLedger(max_alerts=100)
        ledger.append(Alert(pumps=(event,)))
        for performer in ledger.top_performers(limit=5):
            print(performer.symbol, performer.max_profit_margin_pct)
        ```
    """

    def __init__(self, *, max_alerts: int = DEFAULT_MAX_ALERTS) -> None:
        if max_alerts < 1:
            raise ValueError("max_alerts must be >= 1")
        self._max_alerts = max_alerts
        self._alerts: deque[Alert] = deque(maxlen=max_alerts)

    @property
    def max_alerts(self) -> int:
        return self._max_alerts

    def __len__(self) -> int:
        return len(self._alerts)

    def append(self, alert: Alert) -> None:
        """Append an alert, dropping the oldest when over capacity."""
        if len(self._alerts) == self._max_alerts:
            logger.debug("Alert ledger full, evicting %s", self._alerts[0].alert_id)
        self._alerts.append(alert)

    def recent(self, n: int) -> list[Alert]:
        """Return the last `n` alerts, oldest first."""
        if n <= 0:
            return []
        alerts = list(self._alerts)
        return alerts[-n:]

    def latest(self) -> Alert | None:
        return self._alerts[-1] if self._alerts else None

    def latest_pumps(self) -> tuple[PumpEvent, ...]:
        """Return the pumps of the most recent alert, or an empty tuple."""
        latest = self.latest()
        return latest.pumps if latest else ()

    def reset(self) -> None:
        """Drop every alert. History and debounce state are reset elsewhere."""
        self._alerts.clear()

    def top_performers(self, limit: int = DEFAULT_TOP_PERFORMERS_LIMIT) -> list[PerformerStats]:
        """Rank symbols by their best profit margin across retained alerts.

        Ties on the best margin are broken by pump count (descending), then by
        symbol so the ordering is fully deterministic.
        """
        if limit <= 0:
            return []

        counts: dict[str, int] = {}
        max_margin: dict[str, float] = {}
        total_margin: dict[str, float] = {}
        total_volume: dict[str, float] = {}

        for alert in self._alerts:
            for pump in alert.pumps:
                symbol = pump.symbol
                counts[symbol] = counts.get(symbol, 0) + 1
                max_margin[symbol] = max(max_margin.get(symbol, 0.0), pump.profit_margin_pct)
                total_margin[symbol] = total_margin.get(symbol, 0.0) + pump.profit_margin_pct
                total_volume[symbol] = total_volume.get(symbol, 0.0) + pump.quote_volume_24h

        performers = [
            PerformerStats(
                symbol=symbol,
                pump_count=count,
                max_profit_margin_pct=max_margin[symbol],
                avg_profit_margin_pct=total_margin[symbol] / count,
                avg_volume_24h=total_volume[symbol] / count,
            )
            for symbol, count in counts.items()
        ]
        performers.sort(key=lambda p: (-p.max_profit_margin_pct, -p.pump_count, p.symbol))
        return performers[:limit]

    def summary(self) -> LedgerSummary:
        latest = self.latest()
        return LedgerSummary(
            total_alerts=len(self._alerts),
            total_opportunities=sum(a.total_opportunities for a in self._alerts),
            total_potential_profit=latest.total_potential_profit if latest else 0.0,
        )

    def live_summary(self) -> LiveSummary:
        """Summarize the pumps of the most recent alert."""
        pumps = self.latest_pumps()
        return LiveSummary(
            total_pumps=len(pumps),
            total_potential_profit=sum(p.potential_profit for p in pumps),
            high_confidence_pumps=sum(1 for p in pumps if p.is_high_confidence),
            avg_profit_margin_pct=(
                sum(p.profit_margin_pct for p in pumps) / len(pumps) if pumps else 0.0
            ),
        )

    @staticmethod
    def history_stats(alerts: Iterable[Alert]) -> HistoryStats:
        """Aggregate a slice of alerts, typically the output of `recent()`."""
        alerts = list(alerts)
        if not alerts:
            return HistoryStats(avg_pumps_per_alert=0.0, total_profit_opportunities=0.0)
        return HistoryStats(
            avg_pumps_per_alert=sum(a.total_opportunities for a in alerts) / len(alerts),
            total_profit_opportunities=sum(a.total_potential_profit for a in alerts),
        )
