"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta

import pytest

from pump_detector.ingestor.models import MarketStat, PriceSample

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakePriceSource:
    """In-memory price source returning queued batches."""

    def __init__(
        self,
        batches: Iterable[Sequence[PriceSample]] = (),
        *,
        stats: dict[str, MarketStat] | None = None,
        stats_error: Exception | None = None,
    ) -> None:
        self.batches = [list(b) for b in batches]
        self.stats = stats or {}
        self.stats_error = stats_error
        self.price_calls = 0

    async def fetch_prices(self) -> list[PriceSample]:
        self.price_calls += 1
        if not self.batches:
            return []
        return self.batches.pop(0)

    async def fetch_market_stats(self) -> dict[str, MarketStat]:
        if self.stats_error is not None:
            raise self.stats_error
        return dict(self.stats)


def _make_window(
    prices: Sequence[float],
    *,
    symbol: str = "XUSDT",
    start: datetime = BASE_TIME,
    step_seconds: float = 1.0,
) -> list[PriceSample]:
    """Build a time-ordered window of samples."""
    return [
        PriceSample(symbol=symbol, price=p, observed_at=start + timedelta(seconds=i * step_seconds))
        for i, p in enumerate(prices)
    ]


@pytest.fixture
def clock() -> FakeClock:
    """Clock pinned to BASE_TIME; call `advance()` to move it."""
    return FakeClock()


@pytest.fixture
def make_window():
    """Factory for time-ordered sample windows."""
    return _make_window


@pytest.fixture
def fake_source_cls() -> type[FakePriceSource]:
    return FakePriceSource


@pytest.fixture
def sample_market_stat() -> MarketStat:
    """Sample 24h stats for testing."""
    return MarketStat(
        volume_24h=1200.5,
        quote_volume_24h=2_500_000.0,
        change_24h_pct=8.4,
        high_24h=112.0,
        low_24h=98.0,
        trade_count_24h=15432,
    )


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
