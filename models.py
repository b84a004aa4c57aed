from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import Optional

class LogType(str, Enum):
    DETECTION = "detection"
    ANALYSIS = "analysis"
    TRADE = "trade"
    SYSTEM = "system"

class TradeState(str, Enum):
    DETECTED = "detected"
    ANALYZED = "analyzed"
    TRADED = "traded"
    SKIPPED = "skipped"

class AnalysisState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"

class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"

class CloseReason(str, Enum):
    TAKE_PROFIT = "take-profit"
    STOP_LOSS = "stop-loss"
    MANUAL = "manual"

class MonitoredHandle(BaseModel):
    id: str
    handle: str
    last_post: str
    detected_tickers: list[str] = Field(default_factory=list)
    timestamp: datetime

class DetectionEvent(BaseModel):
    ticker: str
    handle: str
    post: str
    timestamp: datetime

class SignalScores(BaseModel):
    virality: float
    trend: float
    mentions: int

class DetectedTicker(BaseModel):
    id: str
    ticker: str
    source: str
    tweet: str
    timestamp: datetime
    virality_score: float = 0
    trend_score: float = 0
    social_mentions: int = 0
    confidence: int = 0
    analyzed: bool = False
    trade_state: TradeState = TradeState.DETECTED
    analysis_state: AnalysisState = AnalysisState.IDLE

class Position(BaseModel):
    id: str
    ticker: str
    entry_price: float
    current_price: float
    size: float
    pnl: float = 0
    pnl_percent: float = 0
    timestamp: datetime
    closed_at: Optional[datetime] = None
    close_reason: Optional[CloseReason] = None

class ClosedTrade(BaseModel):
    position_id: str
    ticker: str
    size: float
    entry_price: float
    exit_price: float
    pnl: float
    pnl_percent: float
    hold_hours: float
    reason: CloseReason
    opened_at: datetime
    closed_at: datetime

class LogEntry(BaseModel):
    id: int
    type: LogType
    message: str
    timestamp: datetime

class TradingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    auto_trade_enabled: bool = True
    position_size: float = Field(default=500, gt=0)
    take_profit_percent: float = Field(default=25, gt=0)
    stop_loss_percent: float = Field(default=10, gt=0)
    min_confidence: Optional[int] = Field(default=None, ge=0, le=100)

class SettingsUpdate(BaseModel):
    auto_trade_enabled: Optional[bool] = None
    position_size: Optional[float] = None
    take_profit_percent: Optional[float] = None
    stop_loss_percent: Optional[float] = None
    min_confidence: Optional[int] = None

class Post(BaseModel):
    text: str
    timestamp: datetime

class Fill(BaseModel):
    ticker: str
    side: OrderSide
    size: float
    fill_price: float

class Stats(BaseModel):
    total_realized_pnl: float
    total_unrealized_pnl: float
    total_pnl: float
    win_rate: float
    total_trades: int
    open_positions: int
