"""Main pump monitor orchestrator.

This module provides the PumpMonitor class that wires the history store,
detector, debounce state and alert ledger together, runs scan cycles on a
fixed period and exposes the read-only query surface.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from pump_detector.alerter.ledger import DEFAULT_TOP_PERFORMERS_LIMIT, AlertLedger
from pump_detector.alerter.models import (
    Alert,
    HistoryStats,
    LedgerSummary,
    LiveSummary,
    PerformerStats,
)
from pump_detector.config import Settings, get_settings
from pump_detector.detector.models import DebounceState, PumpEvent
from pump_detector.detector.pump import PumpDetector
from pump_detector.ingestor.binance_client import BinancePriceClient, PriceSource
from pump_detector.ingestor.history import HistoryStore
from pump_detector.ingestor.models import now_utc
from pump_detector.scanner import CycleResult, Scanner

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class MonitorState(str, Enum):
    """Monitor lifecycle states."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class MonitorStats:
    """Statistics for the monitor."""

    started_at: datetime | None = None
    cycles_run: int = 0
    cycles_skipped: int = 0
    pumps_found: int = 0
    errors: int = 0
    last_cycle_time: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "cycles_run": self.cycles_run,
            "cycles_skipped": self.cycles_skipped,
            "pumps_found": self.pumps_found,
            "errors": self.errors,
            "last_cycle_time": self.last_cycle_time.isoformat() if self.last_cycle_time else None,
            "last_error": self.last_error,
        }


@dataclass(frozen=True)
class LiveView:
    """Current pump opportunities and summary figures."""

    timestamp: datetime
    monitoring_active: bool
    config: dict[str, object]
    current_pumps: tuple[PumpEvent, ...]
    summary: LiveSummary
    ledger: LedgerSummary
    tokens_with_history: int

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "monitoring_active": self.monitoring_active,
            "config": self.config,
            "current_pumps": [p.to_dict() for p in self.current_pumps],
            "summary": self.summary.to_dict(),
            "stats": {
                **self.ledger.to_dict(),
                "tokens_with_history": self.tokens_with_history,
            },
        }


@dataclass(frozen=True)
class HistoryView:
    """A bounded slice of alert history with derived analytics."""

    timestamp: datetime
    total_alerts: int
    history: tuple[Alert, ...]
    stats: HistoryStats
    top_performers: tuple[PerformerStats, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "total_alerts": self.total_alerts,
            "history": [a.to_dict() for a in self.history],
            "stats": {
                **self.stats.to_dict(),
                "top_performers": [p.to_dict() for p in self.top_performers],
            },
        }


@dataclass(frozen=True)
class MonitorStatus:
    """System status snapshot."""

    timestamp: datetime
    monitoring_active: bool
    tokens_monitored: int
    tokens_with_history: int
    total_data_points: int
    total_alerts: int
    next_scan: datetime | None
    stats: dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "monitoring_active": self.monitoring_active,
            "tokens_monitored": self.tokens_monitored,
            "tokens_with_history": self.tokens_with_history,
            "total_data_points": self.total_data_points,
            "total_alerts": self.total_alerts,
            "next_scan": self.next_scan.isoformat() if self.next_scan else None,
            "stats": self.stats,
        }


class PumpMonitor:
    """Pump detection engine with a periodic scan loop.

    All mutable state (history, debounce, ledger) is only touched while
    holding a single asyncio lock, by either a scan cycle or a reset. At most
    one cycle is in flight; a tick that arrives while a cycle is running is
    dropped. Query methods never await, so they always see state between
    cycles.

    Example:
        ```python
        from pump_detector.config import get_settings
        from pump_detector.pipeline import PumpMonitor

        monitor = PumpMonitor(get_settings())

        await monitor.start()
        print(monitor.live().to_dict())
        await monitor.stop()
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        source: PriceSource | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        """Initialize the monitor.

        Args:
            settings: Application settings. If not provided, uses get_settings().
            source: Price source. Defaults to a BinancePriceClient built from settings.
            clock: Time source shared by the scanner and the query views.
        """
        self._settings = settings or get_settings()
        self._clock = clock

        detection = self._settings.detection
        monitor = self._settings.monitor

        self._source: PriceSource = source or BinancePriceClient(
            monitor.symbols,
            base_url=self._settings.binance.rest_url,
            timeout_seconds=self._settings.binance.timeout_seconds,
            user_agent=self._settings.binance.user_agent,
        )
        self._history = HistoryStore(
            window_duration=detection.window_duration,
            max_points=detection.max_points,
        )
        self._debounce = DebounceState()
        self._ledger = AlertLedger(max_alerts=monitor.max_alerts)
        self._detector = PumpDetector(detection.to_detector_config())
        self._scanner = Scanner(
            self._history,
            self._detector,
            self._debounce,
            self._ledger,
            symbols=monitor.symbols,
            clock=clock,
        )
        self._interval = monitor.interval_seconds

        self._state = MonitorState.STOPPED
        self._stats = MonitorStats()
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._loop_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> MonitorState:
        """Current monitor state."""
        return self._state

    @property
    def stats(self) -> MonitorStats:
        """Current monitor statistics."""
        return self._stats

    @property
    def is_running(self) -> bool:
        """Check if the scan loop is active."""
        return self._state == MonitorState.RUNNING

    @property
    def history_store(self) -> HistoryStore:
        return self._history

    @property
    def debounce(self) -> DebounceState:
        return self._debounce

    @property
    def ledger(self) -> AlertLedger:
        return self._ledger

    async def start(self) -> None:
        """Start the scan loop.

        The first cycle runs immediately. Starting an active monitor is a no-op.
        """
        if self._state == MonitorState.RUNNING:
            logger.warning("Monitoring already active")
            return

        self._state = MonitorState.RUNNING
        self._stop_event.clear()
        self._stats.started_at = self._clock()

        detection = self._settings.detection
        logger.info("Starting pump monitoring")
        logger.info("Capital: $%s", f"{detection.capital:,.0f}")
        logger.info("Min profit: %s%%", detection.min_profit_margin_pct)
        logger.info("Interval: %ss", self._interval)
        logger.info("Tokens: %d", len(self._settings.monitor.symbols))

        self._loop_task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        """Stop the scan loop.

        An in-flight cycle is allowed to finish. Stopping an idle monitor is a no-op.
        """
        if self._state == MonitorState.STOPPED:
            return

        self._stop_event.set()
        if self._loop_task:
            # Wait for the loop to observe the stop event so a running cycle completes.
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        self._state = MonitorState.STOPPED
        logger.info("Monitoring stopped")

    async def close(self) -> None:
        """Stop the loop and release the price source."""
        await self.stop()
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def reset(self) -> None:
        """Clear history, debounce state and alerts.

        Waits for any in-flight cycle, so a reset never interleaves with an append.
        """
        async with self._lock:
            self._history.clear()
            self._debounce.clear()
            self._ledger.reset()
        logger.info("Monitoring data reset")

    async def run_cycle(self) -> CycleResult:
        """Run one scan cycle unless another one is already in flight."""
        if self._lock.locked():
            self._stats.cycles_skipped += 1
            logger.debug("Previous cycle still running, skipping tick")
            return CycleResult(skipped=True)

        async with self._lock:
            logger.debug("Scanning at %s", self._clock().isoformat())
            try:
                result = await self._scanner.run_cycle(self._source)
            except Exception as e:
                self._stats.errors += 1
                self._stats.last_error = str(e)
                logger.error("Error in monitoring cycle: %s", e)
                result = CycleResult(error=str(e))

        self._stats.cycles_run += 1
        self._stats.pumps_found += result.pumps_found
        self._stats.last_cycle_time = self._clock()
        return result

    async def _run_loop(self) -> None:
        """Background loop that runs a cycle every interval until stopped."""
        while not self._stop_event.is_set():
            await self.run_cycle()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break
            except TimeoutError:
                pass

    # Query surface

    def live(self) -> LiveView:
        """Return the latest pumps with live and ledger summaries."""
        return LiveView(
            timestamp=self._clock(),
            monitoring_active=self.is_running,
            config=self._settings.summary(),
            current_pumps=self._ledger.latest_pumps(),
            summary=self._ledger.live_summary(),
            ledger=self._ledger.summary(),
            tokens_with_history=self._history.size(),
        )

    def history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> HistoryView:
        """Return up to `limit` most recent alerts, oldest first."""
        alerts = self._ledger.recent(limit)
        return HistoryView(
            timestamp=self._clock(),
            total_alerts=len(self._ledger),
            history=tuple(alerts),
            stats=AlertLedger.history_stats(alerts),
            top_performers=tuple(self._ledger.top_performers()),
        )

    def top_performers(self, limit: int = DEFAULT_TOP_PERFORMERS_LIMIT) -> list[PerformerStats]:
        return self._ledger.top_performers(limit)

    def status(self) -> MonitorStatus:
        now = self._clock()
        return MonitorStatus(
            timestamp=now,
            monitoring_active=self.is_running,
            tokens_monitored=len(self._settings.monitor.symbols),
            tokens_with_history=self._history.size(),
            total_data_points=self._history.total_points(),
            total_alerts=len(self._ledger),
            next_scan=now + timedelta(seconds=self._interval) if self.is_running else None,
            stats=self._stats.to_dict(),
        )

