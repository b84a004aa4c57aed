"""
Seedable stand-ins for the market, the social feed, the scorer and the exchange.

Everything random goes through one random.Random per component, derived from a
single seed, so a run with SIM_SEED set replays exactly.
"""
import random
from datetime import datetime, timezone
from typing import Callable, Optional

from errors import FeedUnavailable, OrderExecutionFailed, PriceUnavailable
from models import DetectionEvent, Fill, OrderSide, Post, SignalScores
from services.collaborators import MarketDataSource

STARTING_PRICES = {
    "PEPE": 0.00001234,
    "BONK": 0.00002156,
    "WIF": 2.41,
    "SOL": 142.50,
    "DOGE": 0.1623,
    "SHIB": 0.00002481,
    "FLOKI": 0.0001872,
    "JUP": 0.87,
}

SEED_POSTS = {
    "@CryptoWhale": "Just loaded up on $PEPE, this one is going parabolic 🚀",
    "@DegenTrader": "The $SOL ecosystem is unmatched. $BONK looking primed.",
    "@AlphaLeaks": "$WIF entry looking clean here. NFA but I'm in.",
}

POST_TEMPLATES = [
    "Just loaded up on ${a}, this one is going parabolic 🚀",
    "The ${a} chart is coiling. ${b} looking primed.",
    "${a} entry looking clean here. NFA but I'm in.",
    "Rotating out of ${a} into ${b}. Don't fade this.",
    "Nobody is talking about ${a} yet 👀",
    "gm. still bullish on ${a}",
    "Markets are quiet today, sitting on my hands.",
]

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class SimulatedMarket:
    """Random-walk prices with a slight upward drift"""

    def __init__(self, rng: random.Random, volatility: float = 0.02):
        self.rng = rng
        self.volatility = volatility
        self.prices = dict(STARTING_PRICES)
        self.unavailable: set[str] = set()

    def price_for(self, ticker: str) -> float:
        ticker = ticker.upper()
        if ticker not in self.prices:
            self.prices[ticker] = round(self.rng.uniform(0.0001, 5.0), 8)
        return self.prices[ticker]

    def set_price(self, ticker: str, price: float):
        self.prices[ticker.upper()] = price

    def advance(self):
        for ticker, price in self.prices.items():
            change = (self.rng.random() - 0.48) * self.volatility
            self.prices[ticker] = max(price * (1 + change), 1e-12)

    async def get_current_price(self, ticker: str) -> float:
        if ticker.upper() in self.unavailable:
            raise PriceUnavailable(ticker, "simulated outage")
        return self.price_for(ticker)

class SimulatedFeed:
    def __init__(self, rng: random.Random, post_chance: float = 0.3,
                 universe: Optional[list[str]] = None, now: Callable[[], datetime] = utcnow):
        self.rng = rng
        self.post_chance = post_chance
        self.universe = universe or list(STARTING_PRICES)
        self.now = now
        self.posts: dict[str, Post] = {}
        self.queued: dict[str, list[Post]] = {}
        self.unavailable: set[str] = set()

    def push(self, handle: str, text: str, timestamp: Optional[datetime] = None):
        """Queue a scripted post, returned on the next fetch for that handle"""
        post = Post(text=text, timestamp=timestamp or self.now())
        self.queued.setdefault(handle.lower(), []).append(post)

    def _compose(self) -> str:
        a, b = self.rng.sample(self.universe, 2)
        template = self.rng.choice(POST_TEMPLATES)
        return template.replace("{a}", a).replace("{b}", b)

    async def fetch_latest_post(self, handle: str) -> Post:
        key = handle.lower()
        if key in self.unavailable:
            raise FeedUnavailable(handle, "simulated outage")

        if self.queued.get(key):
            self.posts[key] = self.queued[key].pop(0)
        elif key not in self.posts:
            seeded = {h.lower(): text for h, text in SEED_POSTS.items()}
            text = seeded.get(key) or self._compose()
            self.posts[key] = Post(text=text, timestamp=self.now())
        elif self.post_chance > 0 and self.rng.random() < self.post_chance:
            self.posts[key] = Post(text=self._compose(), timestamp=self.now())
        return self.posts[key]

class SimulatedScorer:
    def __init__(self, rng: random.Random):
        self.rng = rng
        self.overrides: dict[str, SignalScores] = {}

    def set_scores(self, ticker: str, virality: float, trend: float, mentions: int):
        self.overrides[ticker.upper()] = SignalScores(virality=virality, trend=trend, mentions=mentions)

    async def score(self, event: DetectionEvent) -> SignalScores:
        if event.ticker in self.overrides:
            return self.overrides[event.ticker]
        return SignalScores(
            virality=self.rng.randint(40, 95),
            trend=self.rng.randint(40, 95),
            mentions=self.rng.randint(500, 15000),
        )

class SimulatedMentions:
    """New mentions per tracked ticker each tick (0-9)"""

    def __init__(self, rng: random.Random, max_per_tick: int = 9):
        self.rng = rng
        self.max_per_tick = max_per_tick

    async def new_mentions(self, ticker: str) -> int:
        return self.rng.randint(0, self.max_per_tick)

class PaperExecutor:
    """Fills at the quoted price, or at the market's current price when none is given"""

    def __init__(self, market: MarketDataSource):
        self.market = market
        self.rejecting: set[str] = set()
        self.orders: list[Fill] = []

    async def place_order(self, ticker: str, side: OrderSide, size: float,
                          price: Optional[float] = None) -> Fill:
        if ticker.upper() in self.rejecting:
            raise OrderExecutionFailed(ticker, "simulated rejection")
        if price is None:
            try:
                price = await self.market.get_current_price(ticker)
            except PriceUnavailable as e:
                raise OrderExecutionFailed(ticker, "no market price") from e

        fill = Fill(ticker=ticker.upper(), side=side, size=size, fill_price=price)
        self.orders.append(fill)
        print(f"📝 PAPER {side.value.upper()}: ${fill.ticker} {size:g} USDT @ ${price:.8f}")
        return fill

class Simulation:
    """Bundle of simulated collaborators sharing one seed"""

    def __init__(self, seed: Optional[int] = None, post_chance: float = 0.3,
                 now: Callable[[], datetime] = utcnow):
        root = random.Random(seed)
        self.seed = seed
        self.market = SimulatedMarket(random.Random(root.getrandbits(32)))
        self.feed = SimulatedFeed(random.Random(root.getrandbits(32)), post_chance=post_chance, now=now)
        self.scorer = SimulatedScorer(random.Random(root.getrandbits(32)))
        self.mentions = SimulatedMentions(random.Random(root.getrandbits(32)))
        self.executor = PaperExecutor(self.market)

    def advance(self):
        self.market.advance()
