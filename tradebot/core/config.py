# /tradebot/core/config.py
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Price validation
    MAX_STALENESS_SECONDS: int = 60
    MAX_CONFIDENCE: int = 1_000_000
    MIN_CONFIDENCE: int = 100
    MAX_RELATIVE_CONFIDENCE_BPS: int = 100  # 1% of price
    PRICE_EQUAL_TOLERANCE: int = 100

    # Arbitrage route defaults
    ROUTE_MAX_SLIPPAGE_BPS: int = 100
    ROUTE_DEADLINE_SECONDS: int = 60

    # Trade guards
    MAX_SLIPPAGE_BPS: int = 1000
    MAX_DEADLINE_SECONDS: int = 3600
    TICK_SPACING: int = 1

    # Interpreter
    MAX_LOOP_ITERATIONS: int = 100

    # Operational Settings
    LOG_LEVEL: str = "INFO"
    LOG_SIGNING_KEY: SecretStr | None = None
    SENTRY_DSN: SecretStr | None = None
    SESSION_DIR: str = "/tmp/tradebot_session"  # audit log + halt switch
    CONTROL_API_TOKEN: str | None = None
    HEALTH_PORT: int = 8080

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TRADEBOT_",
    )


try:
    settings = Settings()
except Exception as e:
    # Late import to avoid circular dependency only for logging the failure
    try:
        from tradebot.core.logger import get_logger

        get_logger("tradebot.config").critical("FAILED_TO_LOAD_SETTINGS", error=str(e))
    except Exception:
        print("FAILED_TO_LOAD_SETTINGS", e)
    raise SystemExit(1)
