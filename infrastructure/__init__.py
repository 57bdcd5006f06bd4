"""
Infrastructure Layer for the Workout Metrics API.

This package contains concrete implementations of repository interfaces:
- db/: Supabase database implementations
"""

# Re-export database repositories for convenient access
from infrastructure.db import SupabaseMetricsRepository

__all__ = [
    "SupabaseMetricsRepository",
]
