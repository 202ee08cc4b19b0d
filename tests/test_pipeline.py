"""Tests for the pump monitor orchestrator."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest

from pump_detector.config import DetectionSettings, MonitorSettings, Settings
from pump_detector.ingestor.models import PriceSample
from pump_detector.pipeline import MonitorState, PumpMonitor


def make_settings(*, interval: float = 60.0, symbols: str = "XUSDT,YUSDT") -> Settings:
    return Settings(
        detection=DetectionSettings(DETECTION_MIN_PROFIT_MARGIN_PCT=5),
        monitor=MonitorSettings(
            MONITOR_SYMBOLS=symbols,
            MONITOR_INTERVAL_SECONDS=interval,
        ),
    )


def pump_batches(clock, symbol: str = "XUSDT") -> list[list[PriceSample]]:
    prices = [100.0, 100.0, 100.0, 110.0]
    return [
        [PriceSample(symbol, p, clock.now + timedelta(seconds=i))] for i, p in enumerate(prices)
    ]


def seed_flat_window(monitor: PumpMonitor, clock, symbol: str = "XUSDT") -> None:
    for i in range(3):
        monitor.history_store.update(PriceSample(symbol, 100.0, clock.now + timedelta(seconds=i)))


class BlockingSource:
    """Price source whose fetch waits until released."""

    def __init__(self, batch: list[PriceSample] | None = None) -> None:
        self.batch = batch or []
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_prices(self) -> list[PriceSample]:
        self.entered.set()
        await self.release.wait()
        return list(self.batch)

    async def fetch_market_stats(self) -> dict:
        return {}


class FailingSource:
    async def fetch_prices(self) -> list[PriceSample]:
        raise RuntimeError("upstream exploded")

    async def fetch_market_stats(self) -> dict:
        return {}


async def wait_for_calls(source, n: int) -> None:
    for _ in range(100):
        if source.price_calls >= n:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {n} price fetches, got {source.price_calls}")


class TestPumpMonitorLifecycle:
    """Tests for start/stop/reset."""

    @pytest.mark.asyncio
    async def test_start_runs_first_cycle_immediately(self, clock, fake_source_cls) -> None:
        source = fake_source_cls()
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)

        await monitor.start()
        await wait_for_calls(source, 1)

        assert monitor.state == MonitorState.RUNNING
        assert monitor.is_running
        await monitor.stop()
        assert monitor.state == MonitorState.STOPPED
        assert source.price_calls == 1

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, clock, fake_source_cls, caplog) -> None:
        source = fake_source_cls()
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)

        await monitor.start()
        with caplog.at_level(logging.WARNING):
            await monitor.start()
        await wait_for_calls(source, 1)
        await monitor.stop()

        assert "Monitoring already active" in caplog.text
        assert source.price_calls == 1

    @pytest.mark.asyncio
    async def test_stop_when_idle_is_noop(self, clock, fake_source_cls) -> None:
        monitor = PumpMonitor(make_settings(), source=fake_source_cls(), clock=clock)

        await monitor.stop()
        await monitor.stop()

        assert monitor.state == MonitorState.STOPPED

    @pytest.mark.asyncio
    async def test_loop_keeps_scanning_on_interval(self, clock, fake_source_cls) -> None:
        source = fake_source_cls()
        monitor = PumpMonitor(make_settings(interval=0.01), source=source, clock=clock)

        await monitor.start()
        for _ in range(200):
            if source.price_calls >= 3:
                break
            await asyncio.sleep(0.01)
        await monitor.stop()

        assert source.price_calls >= 3
        assert monitor.stats.cycles_run == source.price_calls

    @pytest.mark.asyncio
    async def test_reset_clears_all_state(self, clock, fake_source_cls) -> None:
        source = fake_source_cls(pump_batches(clock))
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)
        for _ in range(4):
            await monitor.run_cycle()
        assert len(monitor.ledger) == 1

        await monitor.reset()

        assert monitor.top_performers() == []
        assert monitor.history_store.window("XUSDT") == ()
        assert len(monitor.debounce) == 0
        assert monitor.live().current_pumps == ()
        assert monitor.status().total_alerts == 0


class TestPumpMonitorCycles:
    """Tests for cycle execution and overlap handling."""

    @pytest.mark.asyncio
    async def test_overlapping_cycle_is_skipped(self, clock) -> None:
        source = BlockingSource()
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)

        first = asyncio.create_task(monitor.run_cycle())
        await source.entered.wait()

        second = await monitor.run_cycle()

        assert second.skipped is True
        assert monitor.stats.cycles_skipped == 1

        source.release.set()
        result = await first
        assert result.skipped is False
        assert monitor.stats.cycles_run == 1

    @pytest.mark.asyncio
    async def test_reset_waits_for_in_flight_cycle(self, clock) -> None:
        source = BlockingSource([PriceSample("XUSDT", 110.0, clock.now + timedelta(seconds=3))])
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)
        seed_flat_window(monitor, clock)

        cycle = asyncio.create_task(monitor.run_cycle())
        await source.entered.wait()
        reset = asyncio.create_task(monitor.reset())
        for _ in range(5):
            await asyncio.sleep(0)

        assert not reset.done()
        assert len(monitor.history_store.window("XUSDT")) == 3
        assert len(monitor.ledger) == 0

        source.release.set()
        result = await cycle
        await reset

        assert result.pumps_found == 1
        assert len(monitor.ledger) == 0
        assert monitor.history_store.window("XUSDT") == ()
        assert len(monitor.debounce) == 0

    @pytest.mark.asyncio
    async def test_stop_lets_in_flight_cycle_finish(self, clock) -> None:
        source = BlockingSource([PriceSample("XUSDT", 110.0, clock.now + timedelta(seconds=3))])
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)
        seed_flat_window(monitor, clock)

        await monitor.start()
        await source.entered.wait()
        stop = asyncio.create_task(monitor.stop())
        for _ in range(5):
            await asyncio.sleep(0)

        assert not stop.done()
        assert monitor.is_running

        source.release.set()
        await stop

        assert monitor.state == MonitorState.STOPPED
        assert monitor.stats.cycles_run == 1
        assert monitor.stats.pumps_found == 1
        assert len(monitor.ledger) == 1

    @pytest.mark.asyncio
    async def test_source_failure_is_reported(self, clock) -> None:
        monitor = PumpMonitor(make_settings(), source=FailingSource(), clock=clock)

        result = await monitor.run_cycle()

        assert result.error == "upstream exploded"
        assert monitor.stats.errors == 1
        assert monitor.stats.last_error == "upstream exploded"
        assert len(monitor.ledger) == 0

    @pytest.mark.asyncio
    async def test_pump_is_recorded(self, clock, fake_source_cls) -> None:
        source = fake_source_cls(pump_batches(clock))
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)

        for _ in range(4):
            result = await monitor.run_cycle()

        assert result.pumps_found == 1
        assert monitor.stats.pumps_found == 1
        assert monitor.stats.cycles_run == 4

    @pytest.mark.asyncio
    async def test_close_stops_monitor(self, clock, fake_source_cls) -> None:
        monitor = PumpMonitor(make_settings(), source=fake_source_cls(), clock=clock)
        await monitor.start()

        await monitor.close()

        assert not monitor.is_running


class TestPumpMonitorQueries:
    """Tests for the read-only query surface."""

    @pytest.mark.asyncio
    async def test_live_view(self, clock, fake_source_cls) -> None:
        source = fake_source_cls(pump_batches(clock))
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)
        for _ in range(4):
            await monitor.run_cycle()

        data = monitor.live().to_dict()

        assert data["monitoring_active"] is False
        assert data["config"]["min_profit_margin_pct"] == 5.0  # type: ignore[index]
        assert data["config"]["tokens_monitored"] == 2  # type: ignore[index]
        [pump] = data["current_pumps"]  # type: ignore[misc]
        assert pump["symbol"] == "XUSDT"
        assert pump["potential_profit"] == 5000.0
        assert pump["confidence"] == "HIGH"
        assert data["summary"] == {
            "total_pumps": 1,
            "total_potential_profit": 5000.0,
            "high_confidence_pumps": 1,
            "avg_profit_margin_pct": 10.0,
        }
        assert data["stats"]["total_alerts"] == 1  # type: ignore[index]
        assert data["stats"]["tokens_with_history"] == 1  # type: ignore[index]

    @pytest.mark.asyncio
    async def test_history_view(self, clock, fake_source_cls) -> None:
        source = fake_source_cls(pump_batches(clock))
        monitor = PumpMonitor(make_settings(), source=source, clock=clock)
        for _ in range(4):
            await monitor.run_cycle()

        view = monitor.history(limit=5)
        data = view.to_dict()

        assert view.total_alerts == 1
        assert len(view.history) == 1
        assert data["stats"]["avg_pumps_per_alert"] == 1.0  # type: ignore[index]
        assert data["stats"]["total_profit_opportunities"] == 5000.0  # type: ignore[index]
        assert data["stats"]["top_performers"][0]["symbol"] == "XUSDT"  # type: ignore[index]
        assert monitor.history(limit=0).history == ()

    def test_status_when_idle(self, clock, fake_source_cls) -> None:
        monitor = PumpMonitor(make_settings(), source=fake_source_cls(), clock=clock)

        status = monitor.status()

        assert status.monitoring_active is False
        assert status.tokens_monitored == 2
        assert status.tokens_with_history == 0
        assert status.total_data_points == 0
        assert status.next_scan is None
        assert status.to_dict()["stats"]["cycles_run"] == 0  # type: ignore[index]

    @pytest.mark.asyncio
    async def test_status_reports_next_scan_while_running(self, clock, fake_source_cls) -> None:
        source = fake_source_cls()
        monitor = PumpMonitor(make_settings(interval=60.0), source=source, clock=clock)

        await monitor.start()
        await wait_for_calls(source, 1)
        status = monitor.status()
        await monitor.stop()

        assert status.monitoring_active is True
        assert status.next_scan == clock.now + timedelta(seconds=60)
