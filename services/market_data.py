import asyncio
import aiohttp
from datetime import datetime, timezone
from typing import Optional

from errors import PriceUnavailable

class DexScreenerMarketData:
    """Live prices from DexScreener search, cached briefly per ticker"""

    SEARCH_URL = "https://api.dexscreener.com/latest/dex/search"

    def __init__(self, chain: str = "solana", cache_seconds: float = 60):
        self.chain = chain
        self.cache_seconds = cache_seconds
        self.session: Optional[aiohttp.ClientSession] = None
        self.price_cache = {}

    async def get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
        return self.session

    async def close(self):
        if self.session is not None and not self.session.closed:
            await self.session.close()

    def pick_price(self, ticker: str, payload: dict) -> float:
        """Price of the most liquid pair for the ticker on our chain"""
        best_price = 0.0
        best_liquidity = -1.0
        for pair in payload.get("pairs") or []:
            symbol = (pair.get("baseToken", {}).get("symbol") or "").upper().strip()
            if symbol != ticker or pair.get("chainId") != self.chain:
                continue
            liquidity = float(pair.get("liquidity", {}).get("usd") or 0)
            price = float(pair.get("priceUsd") or 0)
            if price > 0 and liquidity > best_liquidity:
                best_liquidity = liquidity
                best_price = price
        return best_price

    async def get_current_price(self, ticker: str) -> float:
        ticker = ticker.upper().strip()

        cached = self.price_cache.get(ticker)
        if cached and (datetime.now(timezone.utc) - cached["timestamp"]).total_seconds() < self.cache_seconds:
            return cached["price"]

        session = await self.get_session()
        try:
            async with session.get(
                self.SEARCH_URL,
                params={"q": ticker},
                timeout=aiohttp.ClientTimeout(total=10)
            ) as resp:
                if resp.status != 200:
                    raise PriceUnavailable(ticker, f"HTTP {resp.status}")
                payload = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PriceUnavailable(ticker, str(e) or type(e).__name__) from e

        price = self.pick_price(ticker, payload)
        if price <= 0:
            raise PriceUnavailable(ticker, f"no {self.chain} pair")

        self.price_cache[ticker] = {"price": price, "timestamp": datetime.now(timezone.utc)}
        return price
