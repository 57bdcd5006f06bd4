"""
FastAPI Dependency Providers for the Workout Metrics API.

This module provides FastAPI dependency injection functions that return
interface types (Protocols) rather than concrete implementations. This
enables clean separation of concerns and easy testing with fake implementations.

Architecture:
- Settings and Supabase client are cached per-process (lru_cache)
- Repository and service providers create new instances per-request
- Auth provider wraps backend.auth

Usage in routers:
    from api.deps import get_current_user, get_metrics_service

    @router.get("/metrics/v2")
    def metrics_v2(
        user_id: str = Depends(get_current_user),
        service: MetricsService = Depends(get_metrics_service),
    ):
        return service.get_metrics_v2(user_id, date_range).to_dict()

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_metrics_repo] = lambda: FakeMetricsRepository()
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException
from supabase import Client, create_client

from application.ports import MetricsRepository
from infrastructure import SupabaseMetricsRepository
from backend.settings import Settings, get_settings as _get_settings
from backend.auth import get_current_user as _get_current_user
from backend.core.metrics.config import MetricsConfig
from backend.services.metrics_service import MetricsService
from backend.services.legacy_metrics import LegacyMetricsService
from backend.services.metrics_facade import MetricsFacade
from backend.services.metrics_telemetry import hash_user_id


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """
    Get application settings.

    Returns cached Settings instance from backend.settings.
    Use this as a FastAPI dependency for settings access.
    """
    return _get_settings()


# =============================================================================
# Supabase Client Provider
# =============================================================================


@lru_cache
def get_supabase_client() -> Optional[Client]:
    """
    Get Supabase client instance (cached for the lifetime of the process).

    Returns:
        Client: Supabase client instance, or None if not configured
    """
    settings = _get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        return None

    return create_client(settings.supabase_url, settings.supabase_key)


def get_supabase_client_required() -> Client:
    """
    Get Supabase client instance, raising if not configured.

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    client = get_supabase_client()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available. Supabase credentials not configured.",
        )
    return client


# =============================================================================
# Repository Providers
# =============================================================================


def get_metrics_repo(
    client: Client = Depends(get_supabase_client_required),
    settings: Settings = Depends(get_settings),
) -> MetricsRepository:
    """
    Get metrics repository instance.

    The return type is the Protocol to enable easy mocking.
    """
    return SupabaseMetricsRepository(
        client,
        mock_fallback=settings.metrics_mock_fallback_enabled,
    )


# =============================================================================
# Service Providers
# =============================================================================


def get_metrics_config(settings: Settings = Depends(get_settings)) -> MetricsConfig:
    """Engine feature configuration derived from settings."""
    return MetricsConfig.from_settings(settings)


def get_metrics_service(
    repository: MetricsRepository = Depends(get_metrics_repo),
    config: MetricsConfig = Depends(get_metrics_config),
) -> MetricsService:
    """Get a metrics service bound to the request's repository."""
    return MetricsService(repository, config)


def get_metrics_facade(
    service: MetricsService = Depends(get_metrics_service),
    settings: Settings = Depends(get_settings),
) -> MetricsFacade:
    """Get the v1/v2/shadow facade configured from the feature flags."""
    legacy = LegacyMetricsService(service)
    salt = settings.metrics_telemetry_hash_salt
    return MetricsFacade(
        fetch_v1=legacy.get_summary,
        fetch_v2=service.get_metrics_v2,
        v2_enabled=settings.metrics_v2_enabled,
        shadow_enabled=settings.metrics_shadow_enabled,
        hash_user_id=lambda user_id: hash_user_id(user_id, salt),
    )


# =============================================================================
# Authentication Providers
# =============================================================================


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    """
    Get the current authenticated user ID.

    Wraps backend.auth.get_current_user for dependency injection.

    Raises:
        HTTPException: 401 if authentication fails
    """
    return await _get_current_user(
        authorization=authorization,
        x_api_key=x_api_key,
    )


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Settings
    "get_settings",
    # Database
    "get_supabase_client",
    "get_supabase_client_required",
    # Repositories
    "get_metrics_repo",
    # Services
    "get_metrics_config",
    "get_metrics_service",
    "get_metrics_facade",
    # Auth
    "get_current_user",
]
