import asyncio
import aiohttp

class AlertService:
    def __init__(self, webhook_url: str = ""):
        self.discord_webhook = webhook_url

    async def send_alert(self, message: str, alert_type: str = "info"):
        if not self.discord_webhook:
            return
        emoji = {"buy": "🟢", "sell": "🔴", "profit": "💰", "loss": "📉", "warning": "⚠️"}.get(alert_type, "📢")
        try:
            async with aiohttp.ClientSession() as session:
                await session.post(self.discord_webhook, json={"content": f"{emoji} {message}"}, timeout=aiohttp.ClientTimeout(total=5))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"⚠️ Alert error: {e}")

    async def alert_buy(self, ticker: str, size: float, price: float, reason: str = ""):
        await self.send_alert(f"BUY ${ticker} {size:g} USDT @ ${price:.8f} | {reason}", "buy")

    async def alert_sell(self, ticker: str, pnl_percent: float, pnl_usd: float, reason: str = ""):
        await self.send_alert(f"SELL ${ticker} {pnl_percent:+.1f}% (${pnl_usd:+.2f}) | {reason}", "profit" if pnl_percent > 0 else "loss")

    async def alert_warning(self, message: str):
        await self.send_alert(message, "warning")
