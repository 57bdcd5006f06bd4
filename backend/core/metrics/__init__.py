"""
Workout metrics aggregation and derived-KPI engine.

Entry point is compute_metrics_v2(); the submodules expose the individual
building blocks (day buckets, rest derivers, calculators, aggregator and the
series adapter).
"""

from backend.core.metrics.config import MetricsConfig
from backend.core.metrics.engine import compute_metrics_v2
from backend.core.metrics.records import (
    DayContext,
    PerWorkoutMetrics,
    PerWorkoutKpis,
    Totals,
    TotalsKpis,
    TimeSeriesPoint,
    ServiceOutput,
    SCHEMA_VERSION,
)
from backend.core.metrics.series_adapter import MeasureId

__all__ = [
    "MetricsConfig",
    "compute_metrics_v2",
    "DayContext",
    "PerWorkoutMetrics",
    "PerWorkoutKpis",
    "Totals",
    "TotalsKpis",
    "TimeSeriesPoint",
    "ServiceOutput",
    "SCHEMA_VERSION",
    "MeasureId",
]
