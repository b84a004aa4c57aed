"""
Contracts for the services the pipeline talks to.

The simulated implementations live in services/simulation.py; real ones
(DexScreener prices, Claude scoring) sit next to them and satisfy the same
methods, so the pipeline never knows which one it got.
"""
from typing import Optional, Protocol

from models import DetectionEvent, Fill, OrderSide, Post, SignalScores

class MarketDataSource(Protocol):
    async def get_current_price(self, ticker: str) -> float:
        """Price > 0, or raise PriceUnavailable"""
        ...

class SocialFeedSource(Protocol):
    async def fetch_latest_post(self, handle: str) -> Post:
        """Latest post for the handle, or raise FeedUnavailable"""
        ...

class OrderExecutor(Protocol):
    async def place_order(self, ticker: str, side: OrderSide, size: float,
                          price: Optional[float] = None) -> Fill:
        """Fill for the order, or raise OrderExecutionFailed. `price` is the quote the caller acted on"""
        ...

class ScoringSource(Protocol):
    async def score(self, event: DetectionEvent) -> SignalScores:
        ...
