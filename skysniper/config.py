"""
SkySniper Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "SkySniper"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # ── API ───────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=3000, alias="PORT")
    allowed_origins: List[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )

    # ── Forecasting Oracle (OpenAI-compatible chat completions) ──────────
    oracle_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        alias="ORACLE_BASE_URL",
    )
    oracle_api_key: str = Field(default="", alias="GROQ_API_KEY")
    oracle_model: str = Field(default="llama3-70b-8192", alias="ORACLE_MODEL")
    oracle_max_tokens: int = Field(default=1000, alias="ORACLE_MAX_TOKENS")
    oracle_top_p: float = Field(default=0.9, alias="ORACLE_TOP_P")
    oracle_timeout_seconds: float = Field(
        default=15.0, alias="ORACLE_TIMEOUT_SECONDS",
        description="Per-call bound; a call exceeding it is counted as failed",
    )
    temperature_conservative: float = Field(default=0.3, alias="TEMPERATURE_CONSERVATIVE")
    temperature_balanced: float = Field(default=0.7, alias="TEMPERATURE_BALANCED")
    temperature_aggressive: float = Field(default=0.9, alias="TEMPERATURE_AGGRESSIVE")

    # ── Prediction ───────────────────────────────────────────────────────
    min_series_length: int = Field(default=10, alias="MIN_SERIES_LENGTH")
    analysis_window: int = Field(default=50, alias="ANALYSIS_WINDOW")
    monte_carlo_trials: int = Field(default=1000, alias="MONTE_CARLO_TRIALS")
    monte_carlo_seed: int | None = Field(default=None, alias="MONTE_CARLO_SEED")

    # ── Cache ─────────────────────────────────────────────────────────────
    cache_max_size: int = Field(default=1000, alias="CACHE_MAX_SIZE")
    cache_ttl_seconds: float = Field(default=300.0, alias="CACHE_TTL_SECONDS")
    cache_sweep_interval_seconds: float = Field(default=300.0, alias="CACHE_SWEEP_INTERVAL_SECONDS")

    # ── Latency Monitor ──────────────────────────────────────────────────
    latency_window_size: int = Field(default=100, alias="LATENCY_WINDOW_SIZE")
    latency_threshold_prediction_ms: float = Field(default=5000.0, alias="LATENCY_THRESHOLD_PREDICTION_MS")
    latency_threshold_audit_ms: float = Field(default=2000.0, alias="LATENCY_THRESHOLD_AUDIT_MS")

    # ── Audit Log (PostgREST) ────────────────────────────────────────────
    audit_url: str = Field(default="", alias="SUPABASE_URL")
    audit_api_key: str = Field(default="", alias="SUPABASE_ANON_KEY")
    audit_table: str = Field(default="predictions", alias="AUDIT_TABLE")
    audit_timeout_seconds: float = Field(default=5.0, alias="AUDIT_TIMEOUT_SECONDS")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    @property
    def latency_thresholds(self) -> dict[str, float]:
        """Per-operation latency thresholds in milliseconds."""
        return {
            "oracle_prediction": self.latency_threshold_prediction_ms,
            "audit_write": self.latency_threshold_audit_ms,
        }


settings = Settings()
