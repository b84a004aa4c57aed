from datetime import datetime, timezone

import pytest

from services.market_data import DexScreenerMarketData

PAYLOAD = {
    "pairs": [
        {"chainId": "solana", "baseToken": {"symbol": "PEPE"}, "priceUsd": "0.0000121", "liquidity": {"usd": 5000}},
        {"chainId": "solana", "baseToken": {"symbol": "PEPE"}, "priceUsd": "0.0000123", "liquidity": {"usd": 90000}},
        {"chainId": "ethereum", "baseToken": {"symbol": "PEPE"}, "priceUsd": "0.0000130", "liquidity": {"usd": 9000000}},
        {"chainId": "solana", "baseToken": {"symbol": "PEPE2"}, "priceUsd": "1.0", "liquidity": {"usd": 9000000}},
    ]
}


def test_picks_most_liquid_pair_on_chain():
    market = DexScreenerMarketData(chain="solana")
    assert market.pick_price("PEPE", PAYLOAD) == 0.0000123


def test_no_matching_pair():
    market = DexScreenerMarketData(chain="base")
    assert market.pick_price("PEPE", PAYLOAD) == 0
    assert market.pick_price("PEPE", {"pairs": None}) == 0


@pytest.mark.asyncio
async def test_cached_price_skips_network():
    market = DexScreenerMarketData()
    market.price_cache["PEPE"] = {"price": 0.00001234, "timestamp": datetime.now(timezone.utc)}
    assert await market.get_current_price("pepe") == 0.00001234
    assert market.session is None
