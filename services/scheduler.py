import asyncio
import traceback
from typing import Optional

from config import settings
from services.alerts import AlertService
from services.pipeline import SignalPipeline, TickReport
from services.simulation import Simulation

class Scheduler:
    """Fixed-interval tick loop for the pipeline; tick() can also be driven by hand"""

    def __init__(self, pipeline: SignalPipeline, interval_seconds: float = 2,
                 simulation: Optional[Simulation] = None, error_backoff_seconds: Optional[float] = None,
                 alerts: Optional[AlertService] = None):
        self.pipeline = pipeline
        self.interval = interval_seconds
        self.simulation = simulation
        self.error_backoff = error_backoff_seconds if error_backoff_seconds is not None else interval_seconds * 5
        self.alerts = alerts
        self.ticks = 0
        self._health_alerted = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> TickReport:
        if self.simulation:
            self.simulation.advance()
        report = await self.pipeline.tick()
        self.ticks += 1
        settings.record_successful_scan()
        self._health_alerted = False
        return report

    async def _loop(self):
        while True:
            try:
                report = await self.tick()
                if report.detections or report.trades_opened or report.trades_closed:
                    print(f"📊 Tick {self.ticks}: {report.detections} detections, "
                          f"{report.trades_opened} opened, {report.trades_closed} closed")
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                print(f"Error: {e}")
                traceback.print_exc()
                settings.record_error(str(e))
                if self.alerts and settings.is_health_critical() and not self._health_alerted:
                    self._health_alerted = True
                    await self.alerts.alert_warning(f"Pipeline unhealthy: {settings.consecutive_errors} consecutive errors (last: {e})")
                await asyncio.sleep(self.error_backoff)

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        print(f"🚀 Scheduler started ({self.interval:g}s ticks)")

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        # Pending re-analyses always run to completion
        await self.pipeline.wait_for_reanalysis()
        print("🛑 Scheduler stopped")
