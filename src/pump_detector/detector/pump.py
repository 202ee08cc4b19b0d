"""Rolling-window pump detection algorithm.

This module provides the PumpDetector class that flags a symbol whose
latest price has moved sharply above its recent window.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from pump_detector.detector.models import Confidence, DebounceState, PumpEvent
from pump_detector.ingestor.models import MarketStat, PriceSample

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CAPITAL = 50_000.0
DEFAULT_MIN_PROFIT_MARGIN_PCT = 2.0
DEFAULT_DEBOUNCE_WINDOW = timedelta(seconds=30)
DEFAULT_HIGH_CONFIDENCE_PCT = 5.0
DEFAULT_MEDIUM_CONFIDENCE_PCT = 2.0

MIN_WINDOW_POINTS = 2


class DetectorConfigError(ValueError):
    """Raised when detector thresholds are out of range."""


@dataclass(frozen=True)
class DetectorConfig:
    capital: float = DEFAULT_CAPITAL
    min_profit_margin_pct: float = DEFAULT_MIN_PROFIT_MARGIN_PCT
    debounce_window: timedelta = DEFAULT_DEBOUNCE_WINDOW
    high_confidence_pct: float = DEFAULT_HIGH_CONFIDENCE_PCT
    medium_confidence_pct: float = DEFAULT_MEDIUM_CONFIDENCE_PCT

    def __post_init__(self) -> None:
        if not self.capital > 0:
            raise DetectorConfigError("capital must be > 0")
        if not 0 < self.min_profit_margin_pct < 100:
            raise DetectorConfigError("min_profit_margin_pct must be in (0, 100)")
        if self.debounce_window <= timedelta(0):
            raise DetectorConfigError("debounce_window must be positive")
        if not 0 <= self.medium_confidence_pct <= self.high_confidence_pct:
            raise DetectorConfigError("confidence thresholds must satisfy 0 <= medium <= high")


@dataclass(frozen=True)
class WindowStats:
    """Summary statistics of a price window."""

    current_price: float
    min_price: float
    avg_price: float
    max_price: float
    change_from_min_pct: float
    change_from_avg_pct: float
    volatility_pct: float
    data_point_count: int


class PumpDetector:
    """Detector for short-window upward price anomalies.

    A window is anomalous when any of three signals reaches its share of the
    minimum profit margin T:
    - change from window minimum >= T
    - change from window mean >= T / 2
    - window volatility (max - min) / min >= 2T

    A symbol that fired within the debounce window is suppressed even when
    the window is anomalous. The detector holds no state of its own; the
    caller owns the DebounceState.

    Example:
        ```python
        detector = PumpDetector(DetectorConfig(capital=50_000, min_profit_margin_pct=5))
        event = detector.evaluate("BTCUSDT", store.window("BTCUSDT"), debounce, now=now)
        if event is not None:
            print(f"{event.symbol}: {event.profit_margin_pct:.2f}% ({event.confidence.value})")
        ```
    """

    def __init__(self, config: DetectorConfig | None = None) -> None:
        self._cfg = config or DetectorConfig()

    @property
    def config(self) -> DetectorConfig:
        return self._cfg

    def evaluate(
        self,
        symbol: str,
        window: Sequence[PriceSample],
        debounce: DebounceState,
        market_stat: MarketStat | None = None,
        *,
        now: datetime,
    ) -> PumpEvent | None:
        """Evaluate a symbol's window and emit a PumpEvent if it qualifies.

        Args:
            symbol: Symbol the window belongs to.
            window: Retained samples, oldest first. The last sample is current.
            debounce: Shared last-fired state; updated when an event is emitted.
            market_stat: Optional 24h stats attached to the emitted event.
            now: Evaluation time, used for debounce and `detected_at`.

        Returns:
            PumpEvent if the window is anomalous and not debounced, else None.
        """
        stats = self.compute_window_stats(window)
        if stats is None:
            return None

        if not self.is_anomalous(stats):
            return None

        last_fired = debounce.last_fired(symbol)
        if last_fired is not None and now - last_fired < self._cfg.debounce_window:
            logger.debug(
                "Suppressing %s: last pump %.1fs ago",
                symbol,
                (now - last_fired).total_seconds(),
            )
            return None
        debounce.mark(symbol, now)

        profit_margin_pct = max(stats.change_from_min_pct, stats.change_from_avg_pct)
        potential_profit = self._cfg.capital * profit_margin_pct / 100
        confidence = self.classify_confidence(profit_margin_pct)

        logger.debug(
            "Pump signal: symbol=%s, from_min=%.2f%%, from_avg=%.2f%%, volatility=%.2f%%, confidence=%s",
            symbol,
            stats.change_from_min_pct,
            stats.change_from_avg_pct,
            stats.volatility_pct,
            confidence.value,
        )

        return PumpEvent(
            symbol=symbol,
            current_price=stats.current_price,
            min_price=stats.min_price,
            avg_price=stats.avg_price,
            max_price=stats.max_price,
            profit_margin_pct=profit_margin_pct,
            potential_profit=potential_profit,
            change_from_min_pct=stats.change_from_min_pct,
            change_from_avg_pct=stats.change_from_avg_pct,
            volatility_pct=stats.volatility_pct,
            confidence=confidence,
            data_point_count=stats.data_point_count,
            detected_at=now,
            observed_at=window[-1].observed_at,
            market_stat=market_stat,
        )

    @staticmethod
    def compute_window_stats(window: Sequence[PriceSample]) -> WindowStats | None:
        """Compute the relative moves of the newest price against its window.

        Returns None for windows that are too short or degenerate.
        """
        if len(window) < MIN_WINDOW_POINTS:
            return None

        prices = [s.price for s in window]
        min_price = min(prices)
        max_price = max(prices)
        avg_price = sum(prices) / len(prices)
        current = prices[-1]

        if min_price <= 0 or avg_price <= 0:
            return None

        change_from_min = (current - min_price) / min_price * 100
        change_from_avg = (current - avg_price) / avg_price * 100
        volatility = (max_price - min_price) / min_price * 100

        if not all(math.isfinite(v) for v in (change_from_min, change_from_avg, volatility)):
            return None

        return WindowStats(
            current_price=current,
            min_price=min_price,
            avg_price=avg_price,
            max_price=max_price,
            change_from_min_pct=change_from_min,
            change_from_avg_pct=change_from_avg,
            volatility_pct=volatility,
            data_point_count=len(prices),
        )

    def is_anomalous(self, stats: WindowStats) -> bool:
        threshold = self._cfg.min_profit_margin_pct
        return (
            stats.change_from_min_pct >= threshold
            or stats.change_from_avg_pct >= threshold / 2
            or stats.volatility_pct >= threshold * 2
        )

    def classify_confidence(self, profit_margin_pct: float) -> Confidence:
        if profit_margin_pct > self._cfg.high_confidence_pct:
            return Confidence.HIGH
        if profit_margin_pct > self._cfg.medium_confidence_pct:
            return Confidence.MEDIUM
        return Confidence.LOW
