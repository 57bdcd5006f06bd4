"""
Application factory for the Workout Metrics API.

create_app() wires Sentry, CORS, the health and metrics routers, and logs
which metrics mode (v1, shadow or v2) the flags select. Tests pass their own
Settings so no environment is read:

    app = create_app(settings=Settings(environment="test", _env_file=None))

The module-level ``app`` is what uvicorn serves.
"""

import logging
import os
from typing import Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. If not provided, uses get_settings()
                  which loads from environment variables.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    _init_sentry(settings)

    app = FastAPI(
        title="Workout Metrics API",
        description="Workout metrics aggregation and derived KPIs",
        version="2.0.0",
    )

    _configure_cors(app)
    _include_routers(app)
    _log_feature_flags(settings)

    return app


def _init_sentry(settings: Settings) -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,
        )
        logger.info("Sentry initialized for workout-metrics-api")


def _configure_cors(app: FastAPI) -> None:
    """Configure CORS middleware for the application."""
    trusted_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    production_origins = os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",")
    trusted_origins.extend([origin.strip() for origin in production_origins if origin.strip()])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=trusted_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _include_routers(app: FastAPI) -> None:
    """Include all API routers in the application."""
    from api.routers import health_router, metrics_router

    # Health router (no prefix - /health at root)
    app.include_router(health_router)
    app.include_router(metrics_router)


def _log_feature_flags(settings: Settings) -> None:
    """Log the status of feature flags at startup."""
    if settings.metrics_v2_enabled:
        logger.info("METRICS_V2_ENABLED is active: serving v2 metrics")
    elif settings.metrics_shadow_enabled:
        logger.info("METRICS_SHADOW_ENABLED is active: serving v1, comparing v2")
    else:
        logger.info("Metrics v2 disabled: serving v1 metrics")

    if not settings.metrics_derived_kpis_enabled:
        logger.info("Derived KPIs are disabled")
    if settings.metrics_include_bodyweight_loads:
        logger.info("Bodyweight loads are included in volume")
    if settings.metrics_mock_fallback_enabled:
        logger.warning("=== METRICS MOCK FALLBACK ACTIVE ===")


# Default app instance for uvicorn
# This allows: uvicorn backend.main:app --reload
app = create_app()
