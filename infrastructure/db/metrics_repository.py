"""
Supabase Metrics Repository Implementation.

This module implements the MetricsRepository protocol using Supabase.
Workouts come from workout_sessions, sets from exercise_sets and body mass
from profiles.

Set queries degrade in steps instead of failing:
1. Inner join to workout_sessions scoped to the user (RLS-safe)
2. Plain query on exercise_sets without the join
3. Empty list, or a small mock dataset when mock fallback is enabled

The per-set timing columns are only selected when the schema capability
probe says they exist; otherwise sets are returned as legacy timing.
"""
from typing import Optional, List, Dict, Any
from datetime import datetime, time, timedelta, timezone
import logging

from supabase import Client

from application.ports.metrics_repository import (
    DateRange,
    WorkoutRecord,
    SetRecord,
    TIMING_ACTUAL,
    TIMING_LEGACY,
)
from infrastructure.db.schema_capability import SchemaCapability, timing_columns

logger = logging.getLogger(__name__)

SET_COLUMNS = "id, workout_id, exercise_name, weight, reps, rest_time, completed, is_warmup, created_at"
TIMING_COLUMNS = "started_at, completed_at"


class SupabaseMetricsRepository:
    """Supabase implementation of MetricsRepository."""

    def __init__(
        self,
        client: Client,
        *,
        mock_fallback: bool = False,
        timing_capability: Optional[SchemaCapability] = None,
    ):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected)
            mock_fallback: Serve mock data when every query fails
            timing_capability: Cached timing-column probe (process-wide by default)
        """
        self._client = client
        self._mock_fallback = mock_fallback
        self._timing = timing_capability or timing_columns

    # =========================================================================
    # Workouts
    # =========================================================================

    def get_workouts(self, date_range: DateRange, user_id: str) -> List[WorkoutRecord]:
        """Get workouts started in the range (end date inclusive), oldest first."""
        start = datetime.combine(date_range.start, time.min, tzinfo=timezone.utc)
        end_exclusive = datetime.combine(
            date_range.end + timedelta(days=1), time.min, tzinfo=timezone.utc
        )
        try:
            result = self._client.table("workout_sessions") \
                .select("id, start_time, end_time, duration") \
                .eq("user_id", user_id) \
                .gte("start_time", start.isoformat()) \
                .lt("start_time", end_exclusive.isoformat()) \
                .order("start_time") \
                .execute()
            return [self._row_to_workout(row) for row in result.data or []]
        except Exception as e:
            logger.exception(f"Error fetching workouts for metrics: {e}")
            return self._mock_workouts(date_range) if self._mock_fallback else []

    @staticmethod
    def _row_to_workout(row: Dict[str, Any]) -> WorkoutRecord:
        return WorkoutRecord(
            id=str(row["id"]),
            started_at=row.get("start_time") or "",
            duration_min=float(row.get("duration") or 0),
            ended_at=row.get("end_time"),
        )

    # =========================================================================
    # Sets
    # =========================================================================

    def _probe_timing_columns(self) -> bool:
        self._client.table("exercise_sets").select(f"id, {TIMING_COLUMNS}").limit(1).execute()
        return True

    def has_timing_columns(self) -> bool:
        return self._timing.get(self._probe_timing_columns)

    def get_sets(
        self,
        workout_ids: List[str],
        user_id: str,
        exercise_id: Optional[str] = None,
    ) -> List[SetRecord]:
        """Get completed (or unflagged) sets for the workouts, degrading on query failure."""
        if not workout_ids:
            return []

        with_timing = self.has_timing_columns()
        columns = f"{SET_COLUMNS}, {TIMING_COLUMNS}" if with_timing else SET_COLUMNS

        try:
            query = self._client.table("exercise_sets") \
                .select(f"{columns}, workout_sessions!inner(id,user_id)") \
                .in_("workout_id", workout_ids) \
                .eq("workout_sessions.user_id", user_id) \
                .or_("completed.is.null,completed.eq.true")
            if exercise_id:
                query = query.eq("exercise_name", exercise_id)
            result = query.execute()
            return [self._row_to_set(row, with_timing) for row in result.data or []]
        except Exception as e:
            logger.warning(f"Joined sets query failed, retrying without join: {e}")

        try:
            query = self._client.table("exercise_sets") \
                .select(columns) \
                .in_("workout_id", workout_ids)
            if exercise_id:
                query = query.eq("exercise_name", exercise_id)
            result = query.execute()
            return [
                self._row_to_set(row, with_timing)
                for row in result.data or []
                if row.get("completed") is not False
            ]
        except Exception as e:
            logger.exception(f"Fallback sets query also failed: {e}")
            return self._mock_sets(workout_ids) if self._mock_fallback else []

    @staticmethod
    def _row_to_set(row: Dict[str, Any], with_timing: bool) -> SetRecord:
        started_at = row.get("started_at") if with_timing else None
        completed_at = row.get("completed_at") if with_timing else None
        exercise = row.get("exercise_name") or ""
        rest = row.get("rest_time")
        return SetRecord(
            id=str(row["id"]),
            workout_id=str(row.get("workout_id")),
            exercise_id=exercise,
            exercise_name=exercise,
            weight_kg=float(row.get("weight") or 0),
            reps=int(row.get("reps") or 0),
            rest_time_sec=float(rest) if rest is not None else None,
            started_at=started_at,
            completed_at=completed_at,
            performed_at=completed_at or row.get("created_at"),
            is_bodyweight=bool(row.get("is_bodyweight", False)),
            is_warmup=bool(row.get("is_warmup", False)),
            timing_quality=TIMING_ACTUAL if started_at and completed_at else TIMING_LEGACY,
        )

    # =========================================================================
    # Profile
    # =========================================================================

    def get_bodyweight_kg(self, user_id: str) -> Optional[float]:
        """Get the user's body mass from their profile."""
        try:
            result = self._client.table("profiles") \
                .select("bodyweight_kg") \
                .eq("id", user_id) \
                .limit(1) \
                .execute()
            if not result.data:
                return None
            value = result.data[0].get("bodyweight_kg")
            return float(value) if value is not None else None
        except Exception as e:
            logger.exception(f"Error fetching body mass: {e}")
            return None

    # =========================================================================
    # Mock Data
    # =========================================================================

    def _mock_workouts(self, date_range: DateRange) -> List[WorkoutRecord]:
        logger.warning("Serving mock workouts for metrics")
        end = datetime.combine(date_range.end, time(hour=10), tzinfo=timezone.utc)
        d1 = end - timedelta(days=1)
        d2 = end - timedelta(days=2)
        return [
            WorkoutRecord(
                id="mock-1",
                started_at=d1.isoformat(),
                ended_at=(d1 + timedelta(minutes=60)).isoformat(),
                duration_min=60,
            ),
            WorkoutRecord(
                id="mock-2",
                started_at=d2.isoformat(),
                ended_at=(d2 + timedelta(minutes=45)).isoformat(),
                duration_min=45,
            ),
        ]

    def _mock_sets(self, workout_ids: List[str]) -> List[SetRecord]:
        logger.warning("Serving mock sets for metrics")
        w1 = workout_ids[0] if workout_ids else "mock-1"
        w2 = workout_ids[1] if len(workout_ids) > 1 else "mock-2"
        return [
            SetRecord(id="set-1", workout_id=w1, exercise_id="bench-press",
                      exercise_name="Bench Press", weight_kg=80, reps=8),
            SetRecord(id="set-2", workout_id=w1, exercise_id="deadlift",
                      exercise_name="Deadlift", weight_kg=100, reps=5),
            SetRecord(id="set-3", workout_id=w2, exercise_id="squat",
                      exercise_name="Squat", weight_kg=60, reps=12),
        ]
