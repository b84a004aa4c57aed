import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, ValidationError

from errors import AnalysisInProgress, FeedUnavailable, InvalidSetting, NotFound, PriceUnavailable
from models import (
    ClosedTrade, CloseReason, DetectedTicker, LogEntry, LogType, MonitoredHandle,
    Position, Stats, TradingSettings,
)
from services.activity_log import ActivityLog
from services.alerts import AlertService
from services.analysis_engine import AnalysisEngine
from services.collaborators import MarketDataSource, OrderExecutor, ScoringSource, SocialFeedSource
from services.detection_engine import DetectionEngine
from services.detection_feed import DetectionFeed
from services.handle_registry import HandleRegistry
from services.position_book import PositionBook
from services.trade_decision import TradeDecisionEngine

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class TickReport(BaseModel):
    posts: int = 0
    detections: int = 0
    trades_opened: int = 0
    trades_closed: int = 0
    feed_errors: int = 0
    price_errors: int = 0
    analysis_errors: int = 0

class SignalPipeline:
    """
    Handle monitoring -> ticker detection -> scoring -> auto-trade -> position valuation.

    Every tick and every user action runs to completion under one lock, so no
    caller ever sees a half-applied tick. Re-analysis is the only operation
    that suspends: it waits outside the lock and completes under it.
    """

    def __init__(self, trading_settings: TradingSettings, market: MarketDataSource,
                 feed: SocialFeedSource, scorer: ScoringSource, executor: OrderExecutor,
                 mentions=None, alerts: Optional[AlertService] = None,
                 detection_window_seconds: float = 300, feed_limit: int = 50,
                 log_retention: Optional[int] = None, reanalysis_delay_seconds: float = 2,
                 now: Callable[[], datetime] = utcnow, echo: bool = True):
        self._settings = trading_settings
        self.market = market
        self.social_feed = feed
        self.mentions = mentions
        self.reanalysis_delay = reanalysis_delay_seconds
        self.now = now

        self.log = ActivityLog(retention=log_retention, echo=echo)
        self.registry = HandleRegistry(self.log)
        self.feed = DetectionFeed(limit=feed_limit)
        self.detection = DetectionEngine(self.feed, self.log, window_seconds=detection_window_seconds)
        self.analysis = AnalysisEngine(self.feed, self.log, scorer)
        self.book = PositionBook()
        self.trader = TradeDecisionEngine(self.book, self.analysis, market, executor, self.log, alerts)

        self._lock = asyncio.Lock()
        self._reanalysis_tasks: set[asyncio.Task] = set()

    # ============ TICK ============

    async def tick(self) -> TickReport:
        async with self._lock:
            report = TickReport()
            snapshot = self._settings

            await self._scan_handles(snapshot, report)
            await self._grow_mentions()
            await self._revalue_positions(snapshot, report)
            return report

    async def _scan_handles(self, snapshot: TradingSettings, report: TickReport):
        for handle in self.registry.all_handles():
            try:
                post = await self.social_feed.fetch_latest_post(handle.handle)
            except FeedUnavailable as e:
                report.feed_errors += 1
                self.log.append(LogType.SYSTEM, str(e), self.now())
                continue

            if not self.registry.ingest_post(handle.id, post.text, post.timestamp):
                continue
            report.posts += 1

            self.registry.set_detected(handle.id, self.detection.detect(post.text))
            for event in self.detection.process(handle.handle, post.text, post.timestamp):
                report.detections += 1
                try:
                    ticker = await self.analysis.analyze(event, self.now())
                    position = await self.trader.on_analyzed(ticker, snapshot, self.now())
                except Exception as e:
                    # Drop this signal, keep scanning
                    report.analysis_errors += 1
                    self.log.append(LogType.SYSTEM, f"Analysis failed: ${event.ticker} from {event.handle} ({e})", self.now())
                    continue
                if position is not None:
                    report.trades_opened += 1

    async def _grow_mentions(self):
        if self.mentions is None:
            return
        increments = {}
        for ticker in self.feed.all_tickers():
            increments[ticker.id] = await self.mentions.new_mentions(ticker.ticker)
        self.analysis.grow_mentions(increments)

    async def _revalue_positions(self, snapshot: TradingSettings, report: TickReport):
        for symbol in self.book.tickers():
            try:
                price = await self.market.get_current_price(symbol)
            except PriceUnavailable as e:
                # Keep the last known price; no exit check this tick
                report.price_errors += 1
                self.log.append(LogType.SYSTEM, f"{e}, keeping last price", self.now())
                continue

            updated = self.book.apply_price_tick(symbol, price)
            closed = await self.trader.evaluate(updated, snapshot, self.now())
            report.trades_closed += len(closed)

    # ============ ACTIONS ============

    async def add_handle(self, raw: str) -> MonitoredHandle:
        async with self._lock:
            return self.registry.add(raw, self.now())

    async def remove_handle(self, handle_id: str) -> MonitoredHandle:
        async with self._lock:
            return self.registry.remove(handle_id, self.now())

    async def update_settings(self, **changes) -> TradingSettings:
        async with self._lock:
            unknown = set(changes) - set(TradingSettings.model_fields)
            if unknown:
                raise InvalidSetting(f"Unknown settings: {', '.join(sorted(unknown))}")
            if not changes:
                return self._settings

            try:
                updated = TradingSettings(**{**self._settings.model_dump(), **changes})
            except ValidationError as e:
                self.log.append(LogType.SYSTEM, "Rejected settings update", self.now())
                raise InvalidSetting(str(e)) from e

            previous = self._settings
            self._settings = updated
            if previous.auto_trade_enabled != updated.auto_trade_enabled:
                state = "enabled" if updated.auto_trade_enabled else "disabled"
                self.log.append(LogType.SYSTEM, f"Auto-trade {state}", self.now())
            described = ", ".join(
                f"{key}={value}" for key, value in changes.items()
                if key != "auto_trade_enabled" and getattr(previous, key) != value
            )
            if described:
                self.log.append(LogType.SYSTEM, f"Settings updated: {described}", self.now())
            return updated

    async def request_reanalysis(self, ticker_id: str) -> DetectedTicker:
        async with self._lock:
            try:
                ticker = self.analysis.begin_reanalysis(ticker_id)
            except AnalysisInProgress as e:
                self.log.append(LogType.SYSTEM, str(e), self.now())
                raise

        task = asyncio.create_task(self._finish_reanalysis(ticker_id))
        self._reanalysis_tasks.add(task)
        task.add_done_callback(self._reanalysis_tasks.discard)
        return ticker

    async def _finish_reanalysis(self, ticker_id: str):
        await asyncio.sleep(self.reanalysis_delay)
        async with self._lock:
            try:
                self.analysis.complete_reanalysis(ticker_id, self.now())
            except NotFound:
                self.log.append(LogType.SYSTEM, f"Re-analysis dropped: ticker {ticker_id} left the feed", self.now())

    async def wait_for_reanalysis(self):
        if self._reanalysis_tasks:
            await asyncio.gather(*list(self._reanalysis_tasks))

    async def close_position(self, position_id: str) -> Optional[ClosedTrade]:
        async with self._lock:
            position = self.book.get(position_id)
            if not self.book.is_open(position_id):
                return None
            try:
                price = await self.market.get_current_price(position.ticker)
                self.book.apply_price_tick(position.ticker, price)
                position = self.book.get(position_id)
            except PriceUnavailable as e:
                self.log.append(LogType.SYSTEM, f"{e}, closing at last price", self.now())
            return await self.trader.close(position, CloseReason.MANUAL, self.now())

    # ============ READS ============

    @property
    def trading_settings(self) -> TradingSettings:
        return self._settings

    def handles(self) -> list[MonitoredHandle]:
        return self.registry.all_handles()

    def tickers(self) -> list[DetectedTicker]:
        return self.feed.all_tickers()

    def positions(self) -> list[Position]:
        return self.book.open_positions()

    def history(self, limit: Optional[int] = None) -> list[ClosedTrade]:
        return self.book.closed_trades(limit)

    def logs(self, limit: Optional[int] = None, type: Optional[LogType] = None) -> list[LogEntry]:
        return self.log.entries(limit, type)

    def stats(self) -> Stats:
        return self.book.stats()
