"""Rolling per-symbol price history.

Each symbol keeps a window of recent samples bounded both by age and by
count. The age bound is measured against the newest sample for that symbol,
so a quiet symbol is not emptied just because the clock moved on.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from datetime import datetime, timedelta

from pump_detector.ingestor.models import PriceSample

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_WINDOW_DURATION = timedelta(minutes=10)
DEFAULT_MAX_POINTS = 1000


class HistoryStore:
    """In-memory store of bounded price windows keyed by symbol.

    Example:
        ```python
        store = HistoryStore(window_duration=timedelta(minutes=10), max_points=1000)
        store.update(PriceSample("BTCUSDT", 64000.0, now_utc()))
        window = store.window("BTCUSDT")
        ```
    """

    def __init__(
        self,
        *,
        window_duration: timedelta = DEFAULT_WINDOW_DURATION,
        max_points: int = DEFAULT_MAX_POINTS,
    ) -> None:
        """Initialize the store.

        Args:
            window_duration: Maximum age of a retained sample, relative to the
                newest sample of the same symbol.
            max_points: Maximum number of samples retained per symbol.
        """
        if window_duration <= timedelta(0):
            raise ValueError("window_duration must be positive")
        if max_points < 1:
            raise ValueError("max_points must be >= 1")
        self._window_duration = window_duration
        self._max_points = max_points
        self._windows: dict[str, deque[PriceSample]] = {}
        self._newest: dict[str, datetime] = {}

    @property
    def window_duration(self) -> timedelta:
        return self._window_duration

    @property
    def max_points(self) -> int:
        return self._max_points

    def update(self, sample: PriceSample) -> None:
        """Append a sample and evict anything outside the window bounds.

        Samples with a non-positive or non-finite price are ignored, as are
        samples already older than the window measured from the newest one.
        """
        if not math.isfinite(sample.price) or sample.price <= 0:
            logger.debug("Ignoring sample for %s with price %r", sample.symbol, sample.price)
            return

        # The cutoff follows the newest timestamp seen, not the incoming one.
        newest = self._newest.get(sample.symbol)
        if newest is None or sample.observed_at > newest:
            newest = sample.observed_at
        cutoff = newest - self._window_duration
        if sample.observed_at < cutoff:
            logger.debug(
                "Ignoring stale sample for %s observed at %s", sample.symbol, sample.observed_at
            )
            return
        self._newest[sample.symbol] = newest

        window = self._windows.get(sample.symbol)
        if window is None:
            window = deque(maxlen=self._max_points)
            self._windows[sample.symbol] = window

        # Arrival order is kept as-is, so an older sample may sit behind a newer one.
        window.append(sample)
        if any(s.observed_at < cutoff for s in window):
            self._windows[sample.symbol] = deque(
                (s for s in window if s.observed_at >= cutoff),
                maxlen=self._max_points,
            )

    def window(self, symbol: str) -> tuple[PriceSample, ...]:
        """Return the retained samples for a symbol, oldest first."""
        window = self._windows.get(symbol)
        if not window:
            return ()
        return tuple(window)

    def size(self) -> int:
        """Return the number of tracked symbols."""
        return len(self._windows)

    def __len__(self) -> int:
        return self.size()

    def symbols(self) -> list[str]:
        return list(self._windows)

    def total_points(self) -> int:
        """Return the number of samples held across all symbols."""
        return sum(len(w) for w in self._windows.values())

    def clear(self) -> None:
        self._windows.clear()
        self._newest.clear()
