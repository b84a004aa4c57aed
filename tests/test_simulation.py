import pytest

from errors import FeedUnavailable, OrderExecutionFailed, PriceUnavailable
from models import DetectionEvent, OrderSide
from services.simulation import Simulation


@pytest.mark.asyncio
async def test_same_seed_replays(clock):
    a = Simulation(seed=123, post_chance=0.5, now=clock)
    b = Simulation(seed=123, post_chance=0.5, now=clock)

    for _ in range(10):
        a.advance()
        b.advance()
    assert a.market.prices == b.market.prices

    posts_a = [(await a.feed.fetch_latest_post("@Someone")).text for _ in range(10)]
    posts_b = [(await b.feed.fetch_latest_post("@Someone")).text for _ in range(10)]
    assert posts_a == posts_b

    event = DetectionEvent(ticker="JUP", handle="@Someone", post="$JUP", timestamp=clock())
    assert await a.scorer.score(event) == await b.scorer.score(event)


@pytest.mark.asyncio
async def test_seeded_handles_start_with_known_posts(sim):
    post = await sim.feed.fetch_latest_post("@cryptowhale")
    assert "$PEPE" in post.text


@pytest.mark.asyncio
async def test_prices_stay_positive(sim):
    for _ in range(500):
        sim.advance()
    for ticker in sim.market.prices:
        assert await sim.market.get_current_price(ticker) > 0


@pytest.mark.asyncio
async def test_forced_failures(sim):
    sim.market.unavailable.add("PEPE")
    sim.feed.unavailable.add("@foo")

    with pytest.raises(PriceUnavailable):
        await sim.market.get_current_price("PEPE")
    with pytest.raises(FeedUnavailable):
        await sim.feed.fetch_latest_post("@Foo")
    with pytest.raises(OrderExecutionFailed):
        await sim.executor.place_order("PEPE", OrderSide.BUY, 100)


@pytest.mark.asyncio
async def test_paper_fill_at_market(sim):
    sim.market.set_price("BONK", 0.00002156)
    fill = await sim.executor.place_order("bonk", OrderSide.BUY, 300)
    assert fill.fill_price == 0.00002156
    assert fill.ticker == "BONK"
    assert sim.executor.orders == [fill]
