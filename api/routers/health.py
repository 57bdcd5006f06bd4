"""
Health check router.

This router provides health check endpoints for monitoring and load balancers.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_settings
from backend.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Health"],
)


@router.get("/health")
def health():
    """
    Simple liveness endpoint for workout-metrics-api.

    Returns:
        dict: Status indicator for health checks
    """
    return {"status": "ok"}


@router.get("/health/flags")
def feature_flags(settings: Settings = Depends(get_settings)):
    """Current metrics feature flags, for checking a rollout from the outside."""
    return {
        "metricsV2Enabled": settings.metrics_v2_enabled,
        "metricsShadowEnabled": settings.metrics_shadow_enabled,
        "derivedKpisEnabled": settings.metrics_derived_kpis_enabled,
        "includeBodyweightLoads": settings.metrics_include_bodyweight_loads,
    }
