import itertools
import math
from datetime import datetime
from typing import Optional

from errors import AnalysisInProgress
from models import AnalysisState, DetectedTicker, DetectionEvent, LogType, TradeState
from services.activity_log import ActivityLog
from services.collaborators import ScoringSource
from services.detection_feed import DetectionFeed

WEIGHTS = {
    "virality": 0.44,
    "trend": 0.44,
    "mentions": 0.12,
}
# Mentions at which the mention subscore reaches ~63%
MENTION_SCALE = 7500

def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))

def mention_score(mentions: int) -> float:
    """Saturating 0-100 score for a raw mention count"""
    return 100 * (1 - math.exp(-max(mentions, 0) / MENTION_SCALE))

def compute_confidence(virality: float, trend: float, mentions: int) -> int:
    raw = (
        WEIGHTS["virality"] * _clamp(virality)
        + WEIGHTS["trend"] * _clamp(trend)
        + WEIGHTS["mentions"] * mention_score(mentions)
    )
    return int(round(_clamp(raw)))

class AnalysisEngine:
    def __init__(self, feed: DetectionFeed, log: ActivityLog, scorer: ScoringSource):
        self.feed = feed
        self.log = log
        self.scorer = scorer
        self._ids = itertools.count(1)

    async def analyze(self, event: DetectionEvent, timestamp: Optional[datetime] = None) -> DetectedTicker:
        scores = await self.scorer.score(event)
        virality = _clamp(scores.virality)
        trend = _clamp(scores.trend)
        mentions = max(int(scores.mentions), 0)

        ticker = DetectedTicker(
            id=str(next(self._ids)),
            ticker=event.ticker,
            source=event.handle,
            tweet=event.post,
            timestamp=event.timestamp,
            virality_score=virality,
            trend_score=trend,
            social_mentions=mentions,
            confidence=compute_confidence(virality, trend, mentions),
            analyzed=True,
            trade_state=TradeState.ANALYZED,
        )
        self.feed.add(ticker)
        self.log.append(LogType.ANALYSIS, f"Analysis complete: ${ticker.ticker} confidence {ticker.confidence}%", timestamp or event.timestamp)
        return ticker.model_copy()

    def begin_reanalysis(self, ticker_id: str) -> DetectedTicker:
        ticker = self.feed.get(ticker_id)
        if ticker.analysis_state == AnalysisState.PENDING:
            raise AnalysisInProgress(ticker.ticker)
        return self.feed.update(ticker_id, analysis_state=AnalysisState.PENDING)

    def complete_reanalysis(self, ticker_id: str, timestamp: Optional[datetime] = None) -> DetectedTicker:
        ticker = self.feed.get(ticker_id)
        confidence = compute_confidence(ticker.virality_score, ticker.trend_score, ticker.social_mentions)
        ticker = self.feed.update(ticker_id, confidence=confidence, analyzed=True, analysis_state=AnalysisState.IDLE)
        self.log.append(LogType.ANALYSIS, f"Re-analysis complete: ${ticker.ticker} confidence {confidence}%", timestamp)
        return ticker

    def grow_mentions(self, increments: dict[str, int]):
        """Add new mentions per ticker id; counts never go down"""
        for ticker_id, extra in increments.items():
            if extra <= 0:
                continue
            ticker = self.feed.get(ticker_id)
            self.feed.update(ticker_id, social_mentions=ticker.social_mentions + int(extra))

    def set_trade_state(self, ticker_id: str, state: TradeState) -> DetectedTicker:
        return self.feed.update(ticker_id, trade_state=state)
