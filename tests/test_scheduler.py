import asyncio

import pytest

from config import settings
from services.scheduler import Scheduler


@pytest.mark.asyncio
async def test_manual_tick_advances_simulation(pipeline, sim):
    before = dict(sim.market.prices)
    scheduler = Scheduler(pipeline, interval_seconds=60, simulation=sim)

    await scheduler.tick()

    assert scheduler.ticks == 1
    assert sim.market.prices != before
    assert settings.last_successful_scan is not None


@pytest.mark.asyncio
async def test_loop_runs_and_stops(pipeline, sim, clock):
    await pipeline.add_handle("@CryptoWhale")
    sim.feed.push("@CryptoWhale", "$PEPE", clock())
    scheduler = Scheduler(pipeline, interval_seconds=0.01)

    scheduler.start()
    assert scheduler.running
    for _ in range(100):
        if scheduler.ticks >= 3:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert not scheduler.running
    assert scheduler.ticks >= 3
    assert [t.ticker for t in pipeline.tickers()] == ["PEPE"]


@pytest.mark.asyncio
async def test_stop_waits_for_pending_reanalysis(pipeline, sim, clock):
    await pipeline.add_handle("@CryptoWhale")
    sim.feed.push("@CryptoWhale", "$PEPE", clock())
    scheduler = Scheduler(pipeline, interval_seconds=60)
    await scheduler.tick()

    [ticker] = pipeline.tickers()
    await pipeline.request_reanalysis(ticker.id)
    await scheduler.stop()

    assert pipeline.tickers()[0].analysis_state.value == "idle"


class BrokenPipeline:
    async def tick(self):
        raise RuntimeError("feed exploded")

    async def wait_for_reanalysis(self):
        return None


class RecordingAlerts:
    def __init__(self):
        self.warnings = []

    async def alert_warning(self, message):
        self.warnings.append(message)


@pytest.mark.asyncio
async def test_repeated_errors_send_one_health_warning(monkeypatch):
    monkeypatch.setattr(settings, "consecutive_errors", 0)
    monkeypatch.setattr(settings, "max_consecutive_errors", 2)
    monkeypatch.setattr(settings, "last_error", None)
    alerts = RecordingAlerts()
    scheduler = Scheduler(BrokenPipeline(), interval_seconds=0.01, error_backoff_seconds=0.01, alerts=alerts)

    scheduler.start()
    for _ in range(100):
        if settings.consecutive_errors >= 4:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert settings.consecutive_errors >= 4
    assert len(alerts.warnings) == 1
    assert "feed exploded" in alerts.warnings[0]


def test_health_timestamps_are_utc(monkeypatch):
    monkeypatch.setattr(settings, "consecutive_errors", 0)
    monkeypatch.setattr(settings, "last_error", None)
    monkeypatch.setattr(settings, "last_successful_scan", None)

    settings.record_error("boom")
    settings.record_successful_scan()

    assert settings.last_error["timestamp"].tzinfo is not None
    assert settings.last_successful_scan.tzinfo is not None
    assert settings.is_health_critical() is False
