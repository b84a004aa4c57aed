from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from contextlib import asynccontextmanager
from pydantic import BaseModel
from typing import Optional
import jwt
from datetime import datetime, timezone

from config import settings
from errors import AnalysisInProgress, DuplicateHandle, EmptyHandle, InvalidSetting, NotFound
from models import LogType, SettingsUpdate
from services.ai_scorer import ClaudeScorer
from services.alerts import AlertService
from services.market_data import DexScreenerMarketData
from services.pipeline import SignalPipeline
from services.scheduler import Scheduler
from services.simulation import SEED_POSTS, PaperExecutor, Simulation

class HandleIn(BaseModel):
    handle: str

def build_pipeline(seed_handles: bool = True) -> tuple[SignalPipeline, Scheduler]:
    simulation = Simulation(seed=settings.sim_seed)

    market = simulation.market
    if settings.market_data == "dexscreener":
        market = DexScreenerMarketData()

    scorer = simulation.scorer
    if settings.scorer == "claude" and settings.anthropic_api_key:
        scorer = ClaudeScorer(settings.anthropic_api_key)

    alerts = AlertService(settings.discord_webhook_url) if settings.discord_webhook_url else None

    pipeline = SignalPipeline(
        settings.trading_settings(),
        market=market,
        feed=simulation.feed,
        scorer=scorer,
        executor=PaperExecutor(market),
        mentions=simulation.mentions,
        alerts=alerts,
        detection_window_seconds=settings.detection_window_seconds,
        feed_limit=settings.feed_limit,
        log_retention=settings.log_retention,
        reanalysis_delay_seconds=settings.reanalysis_delay_seconds,
    )
    if seed_handles:
        for handle in SEED_POSTS:
            pipeline.registry.add(handle)
    pipeline.log.append(LogType.SYSTEM, f"Bot initialized. Monitoring {len(pipeline.registry)} handles.")

    scheduler = Scheduler(pipeline, settings.tick_interval_seconds, simulation=simulation, alerts=alerts)
    return pipeline, scheduler

def create_app(pipeline: SignalPipeline, scheduler: Scheduler, jwt_secret: str = "",
               run_scheduler: bool = True) -> FastAPI:
    security = HTTPBearer(auto_error=False)

    async def verify_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
        if not jwt_secret:
            return None
        if not credentials:
            raise HTTPException(401, "Missing bearer token")
        try:
            return jwt.decode(credentials.credentials, jwt_secret, algorithms=["HS256"], audience="authenticated")
        except jwt.PyJWTError:
            raise HTTPException(401, "Invalid token")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if run_scheduler:
            scheduler.start()
        yield
        await scheduler.stop()
        if isinstance(pipeline.market, DexScreenerMarketData):
            await pipeline.market.close()

    app = FastAPI(title="Social Signal Trader", lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {"status": "running", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/health")
    async def get_health():
        return {
            "status": "critical" if settings.is_health_critical() else "healthy",
            "scheduler_running": scheduler.running,
            "ticks": scheduler.ticks,
            "last_scan": settings.last_successful_scan.isoformat() if settings.last_successful_scan else None,
            "errors": settings.consecutive_errors,
            "last_error": settings.last_error,
        }

    # ============ HANDLES ============

    @app.get("/handles")
    async def get_handles(user=Depends(verify_token)):
        return pipeline.handles()

    @app.post("/handles", status_code=201)
    async def add_handle(data: HandleIn, user=Depends(verify_token)):
        try:
            return await pipeline.add_handle(data.handle)
        except EmptyHandle:
            raise HTTPException(400, "Handle required")
        except DuplicateHandle as e:
            raise HTTPException(409, str(e))

    @app.delete("/handles/{handle_id}")
    async def remove_handle(handle_id: str, user=Depends(verify_token)):
        try:
            removed = await pipeline.remove_handle(handle_id)
        except NotFound as e:
            raise HTTPException(404, str(e))
        return {"status": "removed", "handle": removed.handle}

    # ============ SIGNALS ============

    @app.get("/tickers")
    async def get_tickers(user=Depends(verify_token)):
        return pipeline.tickers()

    @app.post("/tickers/{ticker_id}/reanalyze", status_code=202)
    async def reanalyze(ticker_id: str, user=Depends(verify_token)):
        try:
            ticker = await pipeline.request_reanalysis(ticker_id)
        except NotFound as e:
            raise HTTPException(404, str(e))
        except AnalysisInProgress as e:
            raise HTTPException(409, str(e))
        return {"status": "scanning", "ticker": ticker.ticker}

    @app.post("/force-scan")
    async def force_scan(user=Depends(verify_token)):
        report = await scheduler.tick()
        return report

    # ============ POSITIONS ============

    @app.get("/positions")
    async def get_positions(user=Depends(verify_token)):
        return pipeline.positions()

    @app.post("/positions/{position_id}/close")
    async def close_position(position_id: str, user=Depends(verify_token)):
        try:
            trade = await pipeline.close_position(position_id)
        except NotFound as e:
            raise HTTPException(404, str(e))
        if trade is None:
            return {"status": "unchanged"}
        return {"status": "sold", "trade": trade}

    @app.get("/history")
    async def get_history(limit: int = 50, user=Depends(verify_token)):
        return pipeline.history(limit)

    @app.get("/stats")
    async def get_stats(user=Depends(verify_token)):
        return pipeline.stats()

    @app.get("/logs")
    async def get_logs(limit: int = 100, type: Optional[LogType] = None, user=Depends(verify_token)):
        return pipeline.logs(limit, type)

    # ============ SETTINGS ============

    @app.get("/settings")
    async def get_settings(user=Depends(verify_token)):
        return pipeline.trading_settings

    @app.post("/settings")
    async def update_settings(new: SettingsUpdate, user=Depends(verify_token)):
        try:
            return await pipeline.update_settings(**new.model_dump(exclude_unset=True))
        except InvalidSetting as e:
            raise HTTPException(400, str(e))

    @app.post("/trading/start")
    async def start_trading(user=Depends(verify_token)):
        await pipeline.update_settings(auto_trade_enabled=True)
        return {"status": "started"}

    @app.post("/trading/stop")
    async def stop_trading(user=Depends(verify_token)):
        await pipeline.update_settings(auto_trade_enabled=False)
        return {"status": "stopped"}

    return app

pipeline, scheduler = build_pipeline()
app = create_app(pipeline, scheduler, jwt_secret=settings.supabase_jwt_secret)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
