class PipelineError(Exception):
    """Base for every recoverable error raised inside the trading pipeline"""

class EmptyHandle(PipelineError):
    pass

class DuplicateHandle(PipelineError):
    def __init__(self, handle: str):
        super().__init__(f"{handle} is already monitored")
        self.handle = handle

class NotFound(PipelineError):
    def __init__(self, kind: str, ident: str):
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident

class InvalidSize(PipelineError):
    def __init__(self, size):
        super().__init__(f"Invalid position size: {size}")
        self.size = size

class InvalidPrice(PipelineError):
    def __init__(self, price):
        super().__init__(f"Invalid price: {price}")
        self.price = price

class InvalidSetting(PipelineError):
    pass

class AnalysisInProgress(PipelineError):
    def __init__(self, ticker: str):
        super().__init__(f"Re-analysis already running for ${ticker}")
        self.ticker = ticker

class PriceUnavailable(PipelineError):
    def __init__(self, ticker: str, reason: str = "no price"):
        super().__init__(f"Price unavailable for ${ticker}: {reason}")
        self.ticker = ticker

class FeedUnavailable(PipelineError):
    def __init__(self, handle: str, reason: str = "feed error"):
        super().__init__(f"Feed unavailable for {handle}: {reason}")
        self.handle = handle

class OrderExecutionFailed(PipelineError):
    def __init__(self, ticker: str, reason: str = "order rejected"):
        super().__init__(f"Order failed for ${ticker}: {reason}")
        self.ticker = ticker
        self.reason = reason
