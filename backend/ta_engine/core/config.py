"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite (local persistence)
    sqlite_path: Optional[str] = None  # Defaults to ./data/ta_engine.db

    # Redis (last traded price cache)
    redis_url: str = "redis://localhost:6379"

    # LLM Providers (narrative annotation only)
    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    llm_primary_provider: str = "gemini"  # Options: gemini, anthropic
    llm_explanation_model: str = "gemini-2.5-flash"
    llm_anthropic_model: str = "claude-3-5-haiku-latest"
    llm_timeout_seconds: float = 20.0

    # Analysis
    analysis_min_bars: int = 50
    analysis_cache_days: int = 30
    analysis_granularity: str = "1mo"
    fibonacci_periods: dict[str, int] = {"1d": 252, "1wk": 52, "1mo": 12}
    support_resistance_lookback: int = 20
    level_tolerance: float = 0.015
    quote_fallback_to_last_close: bool = True

    # Narrative confidence penalties
    narrative_missing_penalty: float = 0.7
    narrative_failure_penalty: float = 0.8

    # Circuit breakers (per collaborator instance)
    breaker_failure_threshold: int = 3
    breaker_reset_seconds: float = 300.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
