"""Feature configuration for the metrics engine."""
from typing import Any
from dataclasses import dataclass

from backend.core.metrics.bodyweight import DEFAULT_BODYWEIGHT_KG
from backend.core.metrics.calculators import DEFAULT_TARGET_REST_SEC

DEFAULT_REST_COVERAGE_THRESHOLD_PCT = 80.0


@dataclass(frozen=True)
class MetricsConfig:
    """
    Options recognized by the engine.

    derived_kpis_enabled gates whether KPI fields are returned at all. Active
    and rest minutes are computed either way.
    """
    derived_kpis_enabled: bool = True
    include_bodyweight_loads: bool = False
    target_rest_sec: float = DEFAULT_TARGET_REST_SEC
    rest_coverage_threshold_pct: float = DEFAULT_REST_COVERAGE_THRESHOLD_PCT
    default_bodyweight_kg: float = DEFAULT_BODYWEIGHT_KG

    @classmethod
    def from_settings(cls, settings: Any) -> "MetricsConfig":
        """Build the engine config from application Settings."""
        return cls(
            derived_kpis_enabled=settings.metrics_derived_kpis_enabled,
            include_bodyweight_loads=settings.metrics_include_bodyweight_loads,
            target_rest_sec=settings.metrics_target_rest_sec,
            rest_coverage_threshold_pct=settings.metrics_rest_coverage_threshold_pct,
            default_bodyweight_kg=settings.metrics_default_bodyweight_kg,
        )
