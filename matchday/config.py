"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./matchday.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    ENVIRONMENT: str = "development"  # "production" makes operator endpoints fail closed

    # API Security
    API_KEY: str = ""  # Optional API key for operator endpoints
    API_KEY_HEADER: str = "X-API-Key"
    METRICS_BEARER_TOKEN: str = ""  # Empty = /metrics is open
    ALLOW_ORIGIN: str = "*"

    # ═══════════════════════════════════════════════════════════════
    # Webhooks (external score-reporting system)
    # ═══════════════════════════════════════════════════════════════
    WEBHOOK_SECRET: str = ""  # Empty = every webhook call is rejected
    WEBHOOK_SIGNATURE_HEADER: str = "X-PHP-Signature"

    # ═══════════════════════════════════════════════════════════════
    # News generation
    # ═══════════════════════════════════════════════════════════════
    NEWS_GENERATION_ENABLED: bool = True
    NEWS_SCHEDULER_ENABLED: bool = True
    NEWS_GENERATION_SCHEDULE: str = "0 */6 * * *"  # Full pass every 6 hours
    LINEUP_CHECK_SCHEDULE: str = "0 * * * *"  # Lineup scan every hour
    NEWS_SCHEDULER_TIMEZONE: str = "Africa/Windhoek"
    NEWS_INITIAL_RUN_DELAY_SECONDS: int = 30  # 0 = no startup run

    # Scan windows
    LINEUP_UPLOAD_WINDOW_HOURS: int = 2
    LINEUP_MIN_PLAYERS: int = 11
    LINEUP_DEDUP_HOURS: int = 24
    RESULT_WINDOW_HOURS: int = 24
    UPCOMING_WINDOW_DAYS: int = 7
    UPCOMING_MAX_MATCHES: int = 2
    UPCOMING_DEDUP_DAYS: int = 7
    LEAGUE_UPDATE_DEDUP_HOURS: int = 24
    LEAGUE_ACTIVITY_DAYS: int = 30
    SCAN_MAX_MATCHES: int = 5

    # Generative text (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_MAX_TOKENS: int = 500
    NARRATIVE_LLM_TIMEOUT_SECONDS: float = 20.0
    NARRATIVE_LLM_TEMPERATURE: float = 0.7
    NARRATIVE_LLM_TOP_P: float = 0.9

    # Image lookup (Unsplash)
    UNSPLASH_ACCESS_KEY: str = ""
    UNSPLASH_QUERY: str = "football soccer namibia"
    IMAGE_LOOKUP_TIMEOUT_SECONDS: float = 5.0

    # Telemetry
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.05


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
