"""
Centralized settings configuration using Pydantic BaseSettings.

All environment variables are defined here with types, defaults, and validation.
Use get_settings() for dependency injection compatibility in FastAPI.

Usage:
    from backend.settings import get_settings, Settings

    # In FastAPI endpoints (dependency injection)
    @app.get("/")
    def read_root(settings: Settings = Depends(get_settings)):
        return {"environment": settings.environment}

    # Direct access (module-level)
    settings = get_settings()
    print(settings.metrics_v2_enabled)
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Core Environment
    # -------------------------------------------------------------------------
    environment: str = Field(
        default="development",
        description="Runtime environment: development, staging, production",
    )

    # -------------------------------------------------------------------------
    # Supabase Database
    # -------------------------------------------------------------------------
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL",
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (full access)",
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Supabase anonymous key (limited access)",
    )

    @property
    def supabase_key(self) -> Optional[str]:
        """Get the best available Supabase key (service role preferred)."""
        return self.supabase_service_role_key or self.supabase_anon_key

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    jwt_secret: str = Field(
        default="workout-metrics-jwt-secret-change-in-production",
        description="Shared secret for HS256 bearer tokens",
    )
    jwt_audience: Optional[str] = Field(
        default=None,
        description="Expected audience claim (not checked when unset)",
    )
    api_keys: str = Field(
        default="",
        description="Comma-separated list of valid API keys",
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Parse API keys into a list."""
        return [k.strip() for k in self.api_keys.split(",") if k.strip()]

    # -------------------------------------------------------------------------
    # Metrics Engine - Feature Flags
    # -------------------------------------------------------------------------
    metrics_v2_enabled: bool = Field(
        default=False,
        description="Serve the v2 metrics envelope instead of the v1 summary",
    )
    metrics_shadow_enabled: bool = Field(
        default=False,
        description="Serve v1 and compare against v2 in the background",
    )
    metrics_derived_kpis_enabled: bool = Field(
        default=True,
        description="Return density, rest and set-efficiency KPIs",
    )
    metrics_include_bodyweight_loads: bool = Field(
        default=False,
        description="Impute load for bodyweight sets from the user's body mass",
    )
    metrics_mock_fallback_enabled: bool = Field(
        default=False,
        description="Serve mock data when every metrics query fails",
    )

    # -------------------------------------------------------------------------
    # Metrics Engine - Tuning
    # -------------------------------------------------------------------------
    metrics_target_rest_sec: float = Field(
        default=90.0,
        description="Target rest between sets for the set-efficiency ratio",
    )
    metrics_rest_coverage_threshold_pct: float = Field(
        default=80.0,
        description="Minimum rest coverage for rest KPIs to be shown",
    )
    metrics_default_bodyweight_kg: float = Field(
        default=75.0,
        description="Body mass assumed when the profile has none",
    )
    metrics_telemetry_hash_salt: str = Field(
        default="",
        description="Salt for anonymized user ids in telemetry events",
    )

    # -------------------------------------------------------------------------
    # Observability - Sentry
    # -------------------------------------------------------------------------
    sentry_dsn: Optional[str] = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {valid_environments}"
            )
        return v.lower()

    @field_validator("metrics_target_rest_sec", "metrics_default_bodyweight_kg")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Targets and body mass must be positive."""
        if v <= 0:
            raise ValueError(f"Value must be positive, got {v}")
        return v

    @field_validator("metrics_rest_coverage_threshold_pct")
    @classmethod
    def validate_percentage(cls, v: float) -> float:
        """Coverage threshold is a percentage."""
        if not 0 <= v <= 100:
            raise ValueError(f"Percentage must be between 0 and 100, got {v}")
        return v

    # -------------------------------------------------------------------------
    # Helper Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    For testing, you can clear the cache with get_settings.cache_clear().

    Returns:
        Settings: Application settings instance
    """
    return Settings()
