"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )

    # ===================
    # API SECURITY
    # ===================
    api_key: Optional[str] = Field(
        None,
        description="API key required in X-API-Key when set"
    )

    # ===================
    # AUTO-PICK
    # ===================
    auto_pick_lookback_days: int = Field(
        default=90,
        ge=1,
        le=365,
        description="Days of completed orders used as purchase history"
    )
    auto_pick_draft_ttl_minutes: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="Minutes a generated draft stays applicable"
    )
    auto_pick_default_budget: float = Field(
        default=20000,
        gt=0,
        description="Target total when no bounds are given and the user has no history"
    )
    auto_pick_unseen_share: float = Field(
        default=0.1,
        ge=0,
        le=1,
        description="Share of never-purchased products mixed into the selection"
    )
    auto_pick_max_avg_qty: int = Field(
        default=12,
        ge=1,
        le=1000,
        description="Upper clamp for the historical average quantity per line"
    )

    # ===================
    # PRODUCT SCORES
    # ===================
    product_score_lookback_days: int = Field(
        default=90,
        ge=1,
        le=365,
        description="Days of completed orders used to recalculate product scores"
    )
    product_score_new_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Products created within this window get the novelty bonus"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def api_key_required(self) -> bool:
        """Check if requests must carry an API key."""
        return bool(self.api_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
