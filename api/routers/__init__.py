"""
Router package for the Workout Metrics API.

This package contains all API routers organized by domain:
- health: Health check and feature flag endpoints
- metrics: Workout metrics, personal records and averages
"""

from api.routers.health import router as health_router
from api.routers.metrics import router as metrics_router

__all__ = [
    "health_router",
    "metrics_router",
]
