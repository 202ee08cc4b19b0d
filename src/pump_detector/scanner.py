"""Single scan cycle: fetch, update history, detect, record.

The scanner owns no scheduling; callers decide when a cycle runs and
ensure that cycles never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from pump_detector.alerter.ledger import AlertLedger
from pump_detector.alerter.models import Alert
from pump_detector.detector.models import DebounceState, PumpEvent
from pump_detector.detector.pump import PumpDetector
from pump_detector.ingestor.binance_client import PriceSource
from pump_detector.ingestor.history import HistoryStore
from pump_detector.ingestor.models import MarketStat, PriceSample, now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one scan cycle.

    Attributes:
        pumps_found: Number of pump events recorded this cycle.
        alert: The alert appended to the ledger, if any.
        samples_processed: Price samples fed into the history store.
        skipped: True when the cycle did not run because another was in flight.
        error: Description of an unexpected cycle failure, if any.
    """

    pumps_found: int = 0
    alert: Alert | None = None
    samples_processed: int = 0
    skipped: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "pumps_found": self.pumps_found,
            "alert_id": self.alert.alert_id if self.alert else None,
            "samples_processed": self.samples_processed,
            "skipped": self.skipped,
            "error": self.error,
        }


class Scanner:
    """Runs the fetch -> update -> detect -> record pipeline once per call.

    Example:
        ```python
        scanner = Scanner(history, detector, debounce, ledger, symbols=settings.monitor.symbols)
        result = await scanner.run_cycle(client)
        print(result.pumps_found)
        ```
    """

    def __init__(
        self,
        history: HistoryStore,
        detector: PumpDetector,
        debounce: DebounceState,
        ledger: AlertLedger,
        *,
        symbols: Iterable[str] | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        """Initialize the scanner.

        Args:
            history: Rolling price history, updated once per sample.
            detector: Pump detector evaluated after each update.
            debounce: Shared last-fired state passed to the detector.
            ledger: Alert ledger receiving one alert per productive cycle.
            symbols: Optional monitoring universe; other symbols are ignored.
            clock: Source of the cycle's evaluation time.
        """
        self._history = history
        self._detector = detector
        self._debounce = debounce
        self._ledger = ledger
        self._symbols = frozenset(symbols) if symbols is not None else None
        self._clock = clock

    async def run_cycle(self, source: PriceSource) -> CycleResult:
        """Run a single detection cycle against a price source.

        An empty price batch is a no-op. A failed market-stat fetch only
        removes the optional stats from the emitted events.
        """
        prices, stats = await asyncio.gather(
            source.fetch_prices(),
            self._fetch_market_stats(source),
        )

        if not prices:
            logger.warning("No price data received")
            return CycleResult()

        pumps, processed = self.process_batch(prices, stats)

        if not pumps:
            logger.info("No pumps detected this cycle")
            return CycleResult(samples_processed=processed)

        alert = Alert(pumps=tuple(pumps), created_at=self._clock())
        self._ledger.append(alert)

        logger.info("PUMPS DETECTED: %d", len(pumps))
        for pump in pumps:
            logger.info(
                "   %s: %.2f%% (%s)",
                pump.symbol,
                pump.profit_margin_pct,
                pump.confidence.value,
            )

        return CycleResult(pumps_found=len(pumps), alert=alert, samples_processed=processed)

    def process_batch(
        self,
        prices: Iterable[PriceSample],
        stats: dict[str, MarketStat],
    ) -> tuple[list[PumpEvent], int]:
        """Feed a price batch through history and detection.

        Returns:
            Tuple of (pump events in batch order, samples processed).
        """
        now = self._clock()
        pumps: list[PumpEvent] = []
        processed = 0

        for sample in prices:
            if self._symbols is not None and sample.symbol not in self._symbols:
                continue
            try:
                self._history.update(sample)
                processed += 1
                event = self._detector.evaluate(
                    sample.symbol,
                    self._history.window(sample.symbol),
                    self._debounce,
                    stats.get(sample.symbol),
                    now=now,
                )
            except Exception as e:
                logger.warning("Failed to evaluate %s: %s", sample.symbol, e)
                continue
            if event is not None:
                pumps.append(event)

        return pumps, processed

    async def _fetch_market_stats(self, source: PriceSource) -> dict[str, MarketStat]:
        try:
            return await source.fetch_market_stats()
        except Exception as e:
            logger.warning("Market stats unavailable, continuing without them: %s", e)
            return {}
