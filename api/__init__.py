"""
API package for the Workout Metrics API.

This package contains:
- deps.py: FastAPI dependency providers for DI
- routers/: API route handlers
"""

# Re-export dependency providers for convenient access
from api.deps import (
    get_settings,
    get_supabase_client,
    get_supabase_client_required,
    get_metrics_repo,
    get_metrics_config,
    get_metrics_service,
    get_metrics_facade,
    get_current_user,
)

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
    # Authentication
    "get_current_user",
]
