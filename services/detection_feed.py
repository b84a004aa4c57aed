from collections import deque
from datetime import datetime
from typing import Optional

from errors import NotFound
from models import DetectedTicker

class DetectionFeed:
    """Bounded store of detected tickers, newest first"""

    def __init__(self, limit: int = 50):
        self._items = deque(maxlen=limit)

    def add(self, ticker: DetectedTicker) -> DetectedTicker:
        self._items.appendleft(ticker)
        return ticker.model_copy()

    def get(self, ticker_id: str) -> DetectedTicker:
        return self._get(ticker_id).model_copy()

    def update(self, ticker_id: str, **changes) -> DetectedTicker:
        record = self._get(ticker_id)
        for key, value in changes.items():
            setattr(record, key, value)
        return record.model_copy()

    def find_recent(self, handle: str, symbol: str, since: datetime) -> Optional[DetectedTicker]:
        for item in self._items:
            if item.source.lower() == handle.lower() and item.ticker == symbol and item.timestamp >= since:
                return item.model_copy()
        return None

    def all_tickers(self) -> list[DetectedTicker]:
        return [item.model_copy() for item in self._items]

    def _get(self, ticker_id: str) -> DetectedTicker:
        for item in self._items:
            if item.id == ticker_id:
                return item
        raise NotFound("ticker", ticker_id)

    def __len__(self) -> int:
        return len(self._items)
