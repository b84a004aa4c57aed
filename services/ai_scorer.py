import json
import anthropic

from models import DetectionEvent, SignalScores

PROMPT = """You are a crypto social-signal analyst. A monitored account just posted about a ticker.

ACCOUNT: {handle}
TICKER: ${ticker}
POST: {post}

Score the signal:
- virality (0-100): how likely this post is to spread and drive attention
- trend (0-100): how strongly this ticker is trending in crypto social media right now
- mentions: your best estimate of social mentions of this ticker in the last 24h (integer)

Respond in this exact JSON format:
{{"virality": 0-100, "trend": 0-100, "mentions": integer}}
"""

BULLISH_WORDS = ("parabolic", "moon", "primed", "loaded", "bullish", "🚀", "in.", "send")

def fallback_scores(event: DetectionEvent) -> SignalScores:
    """Rule-based scores used when the model can't be reached"""
    text = event.post.lower()
    hits = sum(1 for word in BULLISH_WORDS if word in text)
    tickers_in_post = max(text.count("$"), 1)
    virality = min(40 + hits * 15, 95)
    # Single-ticker posts read as conviction
    trend = min(50 + hits * 10 - (tickers_in_post - 1) * 5, 95)
    return SignalScores(virality=virality, trend=max(trend, 0), mentions=1000 * (1 + hits))

def parse_scores(text: str) -> SignalScores:
    start = text.find('{')
    end = text.rfind('}') + 1
    if start < 0 or end <= start:
        raise ValueError("no JSON object in response")
    # Missing, null or non-numeric fields raise ValidationError (a ValueError)
    scores = SignalScores.model_validate(json.loads(text[start:end]))
    return SignalScores(
        virality=max(0, min(100, scores.virality)),
        trend=max(0, min(100, scores.trend)),
        mentions=max(0, scores.mentions),
    )

class ClaudeScorer:
    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514", client=None):
        self.model = model
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def score(self, event: DetectionEvent) -> SignalScores:
        prompt = PROMPT.format(handle=event.handle, ticker=event.ticker, post=event.post)
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=200,
                messages=[{"role": "user", "content": prompt}]
            )
            scores = parse_scores(response.content[0].text)
            print(f"   🤖 AI: ${event.ticker} virality {scores.virality:.0f} trend {scores.trend:.0f}")
            return scores
        except (anthropic.APIError, ValueError, TypeError, IndexError) as e:
            print(f"   AI error: {e}")
            return fallback_scores(event)
