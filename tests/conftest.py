import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from models import TradingSettings
from services.pipeline import SignalPipeline
from services.simulation import Simulation


class FakeClock:
    def __init__(self, start: datetime = None):
        self.current = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float):
        self.current += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sim(clock):
    # post_chance=0: handles only post what a test pushes
    return Simulation(seed=42, post_chance=0, now=clock)


@pytest.fixture
def trading_settings():
    return TradingSettings(
        auto_trade_enabled=True,
        position_size=500,
        take_profit_percent=25,
        stop_loss_percent=10,
    )


@pytest.fixture
def pipeline(sim, clock, trading_settings):
    return SignalPipeline(
        trading_settings,
        market=sim.market,
        feed=sim.feed,
        scorer=sim.scorer,
        executor=sim.executor,
        mentions=sim.mentions,
        reanalysis_delay_seconds=0.01,
        now=clock,
        echo=False,
    )
