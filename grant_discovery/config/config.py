"""Configuration management for grant discovery."""

from typing import Optional
from pydantic import ValidationError
from pydantic_settings import BaseSettings


# Required only when the grant pool is read from Supabase
POOL_REQUIRED_VARS = [
    "SUPABASE_URL",
    "SUPABASE_KEY",
]


class Config(BaseSettings):
    """Application configuration from environment variables."""

    # Grant pool source
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    grants_table: str = "grants"
    pool_limit: int = 500

    # AI enrichment (optional; deterministic results when absent)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    enrichment_enabled: bool = True
    enrichment_timeout_seconds: float = 20.0
    enrichment_batch_size: int = 30
    ai_candidate_limit: int = 50
    ai_score_weight: float = 0.4
    cache_ttl_days: int = 7

    # Matching defaults
    default_limit: int = 20
    default_min_score: int = 30
    min_confidence_for_hard_mode: float = 0.5
    weights_file: Optional[str] = None

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False, "extra": "ignore"}

    @property
    def enrichment_configured(self) -> bool:
        return self.enrichment_enabled and bool(self.gemini_api_key)


def validate_config(require_pool: bool = False) -> Config:
    """Load and validate configuration from environment.

    Raises ValueError with descriptive message listing ALL missing
    required variables (not just the first one).

    Args:
        require_pool: Also require Supabase credentials for the pool source
    """
    try:
        config = Config()
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ValueError(f"Invalid configuration: {fields}") from exc

    if require_pool:
        missing = [var for var in POOL_REQUIRED_VARS if not getattr(config, var.lower())]
        if missing:
            names = ", ".join(missing)
            raise ValueError(
                f"Missing required environment variable(s): {names}. "
                "Please set them in your .env file or environment."
            )

    if not 0 <= config.ai_score_weight <= 1:
        raise ValueError(f"AI_SCORE_WEIGHT must be between 0 and 1, got {config.ai_score_weight}")

    return config


def load_config(require_pool: bool = False) -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config(require_pool=require_pool)
