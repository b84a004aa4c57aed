import os
from datetime import datetime, timezone
from typing import Optional
from dotenv import load_dotenv

from models import TradingSettings

load_dotenv()

def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "")
    return int(value) if value.strip() else None

class Settings:
    def __init__(self):
        # Trading parameters (initial values, changed at runtime via the pipeline)
        self.auto_trade_enabled = _env_bool("AUTO_TRADE_ENABLED", True)
        self.position_size = float(os.getenv("POSITION_SIZE", "500"))
        self.take_profit_percent = float(os.getenv("TAKE_PROFIT_PERCENT", "25"))
        self.stop_loss_percent = float(os.getenv("STOP_LOSS_PERCENT", "10"))
        self.min_confidence = _env_optional_int("MIN_CONFIDENCE")

        # Pipeline timing
        self.tick_interval_seconds = float(os.getenv("TICK_INTERVAL_SECONDS", "2"))
        self.reanalysis_delay_seconds = float(os.getenv("REANALYSIS_DELAY_SECONDS", "2"))
        self.detection_window_seconds = float(os.getenv("DETECTION_WINDOW_SECONDS", "300"))

        # Retention
        self.feed_limit = int(os.getenv("FEED_LIMIT", "50"))
        self.log_retention = int(os.getenv("LOG_RETENTION", "500"))

        # Collaborators
        self.sim_seed = _env_optional_int("SIM_SEED")
        self.market_data = os.getenv("MARKET_DATA", "simulated")
        self.scorer = os.getenv("SCORER", "simulated")
        self.anthropic_api_key = os.getenv("ANTHROPIC_API_KEY", "")
        self.discord_webhook_url = os.getenv("DISCORD_WEBHOOK_URL", "")
        self.supabase_jwt_secret = os.getenv("SUPABASE_JWT_SECRET", "")

        # Health monitoring
        self.last_successful_scan = None
        self.last_error = None
        self.consecutive_errors = 0
        self.max_consecutive_errors = 5  # Alert after this many

    def trading_settings(self) -> TradingSettings:
        return TradingSettings(
            auto_trade_enabled=self.auto_trade_enabled,
            position_size=self.position_size,
            take_profit_percent=self.take_profit_percent,
            stop_loss_percent=self.stop_loss_percent,
            min_confidence=self.min_confidence,
        )

    def record_successful_scan(self):
        self.last_successful_scan = datetime.now(timezone.utc)
        self.consecutive_errors = 0

    def record_error(self, error: str):
        self.last_error = {"error": error, "timestamp": datetime.now(timezone.utc)}
        self.consecutive_errors += 1

    def is_health_critical(self) -> bool:
        if self.consecutive_errors >= self.max_consecutive_errors:
            return True

        if self.last_successful_scan:
            seconds_since_scan = (datetime.now(timezone.utc) - self.last_successful_scan).total_seconds()
            # Ten missed ticks in a row
            if seconds_since_scan > max(self.tick_interval_seconds * 10, 60):
                return True

        return False

settings = Settings()
