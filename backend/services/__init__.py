"""Backend services for the Workout Metrics API."""

from backend.services.metrics_service import (
    MetricsService,
    MetricsError,
    MissingUserError,
)
from backend.services.legacy_metrics import LegacyMetricsService, compute_metrics_v1
from backend.services.metrics_parity import summarize_parity_diff
from backend.services.metrics_facade import MetricsFacade

__all__ = [
    "MetricsService",
    "MetricsError",
    "MissingUserError",
    "LegacyMetricsService",
    "compute_metrics_v1",
    "summarize_parity_diff",
    "MetricsFacade",
]
