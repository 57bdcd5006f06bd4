"""
Infrastructure Database Layer.

This package provides Supabase-backed implementations of the repository interfaces
defined in application.ports. These implementations can be injected into services
and routers for clean separation of concerns and testability.

Usage:
    from supabase import create_client
    from infrastructure.db import SupabaseMetricsRepository

    client = create_client(SUPABASE_URL, SUPABASE_KEY)
    metrics_repo = SupabaseMetricsRepository(client)
"""

from infrastructure.db.metrics_repository import SupabaseMetricsRepository
from infrastructure.db.schema_capability import SchemaCapability, timing_columns

__all__ = [
    # Workout metrics source records
    "SupabaseMetricsRepository",

    # Schema probing
    "SchemaCapability",
    "timing_columns",
]
