from datetime import datetime
from typing import Optional

from errors import OrderExecutionFailed, PriceUnavailable
from models import (
    ClosedTrade, CloseReason, DetectedTicker, LogType, OrderSide, Position,
    TradeState, TradingSettings,
)
from services.activity_log import ActivityLog
from services.alerts import AlertService
from services.analysis_engine import AnalysisEngine
from services.collaborators import MarketDataSource, OrderExecutor
from services.position_book import PositionBook

def format_price(price: float) -> str:
    if price < 1:
        return f"{price:.8f}"
    return f"{price:,.2f}"

def format_size(size: float) -> str:
    return f"{size:g}"

def check_exit(position: Position, settings: TradingSettings) -> Optional[CloseReason]:
    if position.pnl_percent >= settings.take_profit_percent:
        return CloseReason.TAKE_PROFIT
    if position.pnl_percent <= -settings.stop_loss_percent:
        return CloseReason.STOP_LOSS
    return None

class TradeDecisionEngine:
    def __init__(self, book: PositionBook, analysis: AnalysisEngine, market: MarketDataSource,
                 executor: OrderExecutor, log: ActivityLog, alerts: Optional[AlertService] = None):
        self.book = book
        self.analysis = analysis
        self.market = market
        self.executor = executor
        self.log = log
        self.alerts = alerts

    async def on_analyzed(self, ticker: DetectedTicker, settings: TradingSettings,
                          timestamp: Optional[datetime] = None) -> Optional[Position]:
        symbol = ticker.ticker

        if not settings.auto_trade_enabled:
            self.analysis.set_trade_state(ticker.id, TradeState.SKIPPED)
            return None

        # Off by default; confidence is advisory unless MIN_CONFIDENCE is set
        if settings.min_confidence is not None and ticker.confidence < settings.min_confidence:
            self.analysis.set_trade_state(ticker.id, TradeState.SKIPPED)
            self.log.append(LogType.TRADE, f"BUY skipped: ${symbol} confidence {ticker.confidence}% below {settings.min_confidence}%", timestamp)
            return None

        try:
            # No order without an observable market price; the fill is quoted at it
            price = await self.market.get_current_price(symbol)
            fill = await self.executor.place_order(symbol, OrderSide.BUY, settings.position_size, price)
        except PriceUnavailable as e:
            self.analysis.set_trade_state(ticker.id, TradeState.SKIPPED)
            self.log.append(LogType.TRADE, f"BUY skipped: {e}", timestamp)
            return None
        except OrderExecutionFailed as e:
            self.analysis.set_trade_state(ticker.id, TradeState.SKIPPED)
            self.log.append(LogType.TRADE, f"BUY failed: ${symbol} ({e.reason})", timestamp)
            return None

        position = self.book.open(symbol, fill.fill_price, settings.position_size, timestamp)
        self.analysis.set_trade_state(ticker.id, TradeState.TRADED)
        self.log.append(
            LogType.TRADE,
            f"BUY executed: ${symbol} @ ${format_price(position.entry_price)} ({format_size(position.size)} USDT)",
            timestamp,
        )
        if self.alerts:
            await self.alerts.alert_buy(symbol, position.size, position.entry_price, f"confidence {ticker.confidence}%")
        return position

    async def evaluate(self, positions: list[Position], settings: TradingSettings,
                       timestamp: Optional[datetime] = None) -> list[ClosedTrade]:
        closed = []
        for position in positions:
            reason = check_exit(position, settings)
            if reason is None:
                continue
            trade = await self.close(position, reason, timestamp)
            if trade is not None:
                closed.append(trade)
        return closed

    async def close(self, position: Position, reason: CloseReason,
                    timestamp: Optional[datetime] = None) -> Optional[ClosedTrade]:
        symbol = position.ticker
        try:
            await self.executor.place_order(symbol, OrderSide.SELL, position.size, position.current_price)
        except OrderExecutionFailed as e:
            self.log.append(LogType.TRADE, f"SELL failed: ${symbol} ({e.reason})", timestamp)
            return None

        trade = self.book.close(position.id, reason, position.current_price, timestamp)
        if trade is None:
            return None

        self.log.append(
            LogType.TRADE,
            f"SELL executed: ${symbol} @ ${format_price(trade.exit_price)} ({trade.reason.value}, {trade.pnl_percent:+.2f}%)",
            timestamp,
        )
        if self.alerts:
            await self.alerts.alert_sell(symbol, trade.pnl_percent, trade.pnl, trade.reason.value)
        return trade
