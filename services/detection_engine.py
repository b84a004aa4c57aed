import re
from datetime import datetime, timedelta

from models import DetectionEvent, LogType
from services.activity_log import ActivityLog
from services.detection_feed import DetectionFeed

# $ sigil followed by 2-10 uppercase alphanumerics, e.g. $PEPE, $BONK, $1INCH
TICKER_PATTERN = re.compile(r"\$([A-Z0-9]{2,10})(?![A-Za-z0-9])")

def detect(text: str) -> list[str]:
    """Distinct ticker symbols in first-seen order"""
    if not text:
        return []
    seen = []
    for match in TICKER_PATTERN.finditer(text):
        symbol = match.group(1)
        if symbol not in seen:
            seen.append(symbol)
    return seen

class DetectionEngine:
    def __init__(self, feed: DetectionFeed, log: ActivityLog, window_seconds: float = 300):
        self.feed = feed
        self.log = log
        self.window = timedelta(seconds=window_seconds)

    def detect(self, text: str) -> list[str]:
        return detect(text)

    def process(self, handle: str, text: str, timestamp: datetime) -> list[DetectionEvent]:
        events = []
        for symbol in detect(text):
            tracked = self.feed.find_recent(handle, symbol, timestamp - self.window)
            if tracked is not None:
                # Same signal inside the window, just refresh where it was last seen
                self.feed.update(tracked.id, tweet=text, timestamp=timestamp)
                continue

            events.append(DetectionEvent(ticker=symbol, handle=handle, post=text, timestamp=timestamp))
            self.log.append(LogType.DETECTION, f"Ticker ${symbol} detected from {handle}", timestamp)
        return events
