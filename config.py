"""
Opportunity Scoring Service - Configuration
"""
from pathlib import Path

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationInvalid(Exception):
    """Raised at startup when settings fail validation."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Paths
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).parent / "data")
    DATABASE_PATH: Path = Field(default_factory=lambda: Path(__file__).parent / "data" / "opportunities.db")
    LOG_DIR: Path = Field(default_factory=lambda: Path(__file__).parent / "data" / "logs")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # LLM
    LLM_PROVIDER: str = Field(default="openai", description="openai | anthropic")
    LLM_MODEL: str = Field(default="", description="Empty means the provider default")
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    ANTHROPIC_API_KEY: str = Field(default="", description="Claude API key")
    LLM_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    LLM_TEMPERATURE: float = Field(default=0.3, ge=0, le=2)
    LLM_LOG_CALLS: bool = Field(default=True, description="Persist every external call to ai_usage_log")

    # Daily token budgets (reset at midnight UTC)
    DAILY_SCORING_TOKENS: int = Field(default=100_000, gt=0)
    DAILY_NEWS_TOKENS: int = Field(default=50_000, gt=0)
    DAILY_CHAT_TOKENS: int = Field(default=200_000, gt=0)  # tools share this budget
    DAILY_TOTAL_TOKENS: int = Field(default=500_000, gt=0)
    BUDGET_WARNING_PERCENT: float = Field(default=80.0, gt=0, le=100)

    # Per-request budgets
    MAX_INPUT_TOKENS: int = Field(default=2000, gt=0)
    MAX_OUTPUT_TOKENS: int = Field(default=500, gt=0)
    OUTPUT_TOKENS_PER_PROPERTY: int = Field(default=150, gt=0)
    MAX_OUTPUT_TOKENS_PER_PROPERTY: int = Field(default=200, gt=0)

    # Context compression targets (chars, not tokens)
    MAX_INVESTOR_CONTEXT_CHARS: int = Field(default=200, gt=3)
    MAX_PROPERTY_CONTEXT_CHARS: int = Field(default=150, gt=3)
    MAX_MARKET_CONTEXT_CHARS: int = Field(default=200, gt=3)
    MAX_TOTAL_CONTEXT_TOKENS: int = Field(default=800, gt=0)

    # Cache TTLs
    MARKET_CONTEXT_TTL_HOURS: float = Field(default=1.0, gt=0)
    INVESTOR_CONTEXT_TTL_HOURS: float = Field(default=168.0, gt=0)  # 1 week
    PROPERTY_CONTEXT_TTL_HOURS: float = Field(default=4.0, gt=0)
    CACHE_SWEEP_INTERVAL_MINUTES: int = Field(default=15, gt=0)

    # Rate limiting
    NEWS_FETCHES_PER_HOUR: int = Field(default=20, gt=0)
    AI_CALLS_PER_MINUTE: int = Field(default=30, gt=0)
    BATCH_SIZE_MAX: int = Field(default=10, gt=0)

    # Tier thresholds
    TIER1_DB_FILTER_MAX: int = Field(default=100, gt=0)
    TIER2_RULE_SCORE_MIN: int = Field(default=40, ge=0, le=100)
    TIER2_RULE_SCORE_KEEP: int = Field(default=15, gt=0)
    TIER4_AI_SCORE_MAX: int = Field(default=8, ge=0)

    # API
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @model_validator(mode="after")
    def _check_budgets(self) -> "Settings":
        for name in ("DAILY_SCORING_TOKENS", "DAILY_NEWS_TOKENS", "DAILY_CHAT_TOKENS"):
            if getattr(self, name) > self.DAILY_TOTAL_TOKENS:
                raise ValueError(f"{name} exceeds DAILY_TOTAL_TOKENS")
        return self


def load_settings(**overrides) -> Settings:
    """
    Build a Settings instance, failing fast on invalid values.

    Raises:
        ConfigurationInvalid: If any value violates its constraints
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationInvalid(str(e)) from e


# Global settings instance
settings = load_settings()


def ensure_directories():
    """Ensure all required directories exist."""
    dirs = [
        settings.DATA_DIR,
        settings.LOG_DIR,
    ]
    for dir_path in dirs:
        dir_path.mkdir(parents=True, exist_ok=True)
