"""
Repository Interfaces (Ports) for the Workout Metrics API.

This package defines abstract interfaces that decouple the metrics engine from
infrastructure (database, external services). Implementations are provided
in the infrastructure layer.

Architecture follows the Ports & Adapters (Hexagonal) pattern:
- Ports: Abstract interfaces defined here (what the engine needs)
- Adapters: Concrete implementations in infrastructure/ (how it's provided)

Usage:
    from application.ports import MetricsRepository

    class MetricsService:
        def __init__(self, repository: MetricsRepository):
            self._repository = repository
"""

# Metrics source records
from application.ports.metrics_repository import (
    MetricsRepository,
    DateRange,
    WorkoutRecord,
    SetRecord,
    TIMING_ACTUAL,
    TIMING_LEGACY,
)

__all__ = [
    "MetricsRepository",
    "DateRange",
    "WorkoutRecord",
    "SetRecord",
    "TIMING_ACTUAL",
    "TIMING_LEGACY",
]
