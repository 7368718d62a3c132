from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql://postgres:postgres@db:5432/gutsy"
    anthropic_api_key: str = ""

    llm_model: str = "claude-sonnet-4-5-20250929"

    # Anthropic API timeout settings (seconds)
    anthropic_timeout: int = 60
    anthropic_connect_timeout: int = 10  # Connection establishment

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    # Trigger analysis thresholds
    trigger_min_logs: int = 10
    trigger_min_consumption: int = 5
    trigger_confidence_level: float = 0.95
    trigger_max_ci_width: Optional[float] = None  # None disables the width filter
    trigger_default_limit: int = 10
    trigger_max_limit: int = 50

    # Ingredient normalization
    normalization_min_confidence: float = 0.5
    normalization_max_results: int = 10
    normalization_fuzzy_threshold: float = 0.6
    normalization_llm_enabled: bool = True

    # Normalization monitoring (GET /ingredients/stats)
    normalization_stats_window_hours: int = 24
    normalization_stats_failure_patterns: int = 5
    normalization_healthy_failure_rate: float = 0.05  # "degraded" at or above this

    # Auth settings
    session_cookie_name: str = "gutsy_session"
    session_max_age: int = 86400 * 7  # 7 days
    session_cookie_secure: bool = False  # True in production

    class Config:
        env_file = ".env"


settings = Settings()
