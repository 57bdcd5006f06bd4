"""
Metrics Service.

Orchestrates the repository and the v2 engine for one request:
1. Check the caller identity (no user means no metrics)
2. Fetch workouts, then their sets, then body mass when bodyweight loads
   are enabled
3. Run the engine and log one structured line per request

Repository failures never fail the request: they are logged and replaced by
empty data so the caller always gets a well-shaped ServiceOutput.
"""
from typing import Optional, List, Dict, Any, Callable, TypeVar
from dataclasses import dataclass
from datetime import date, datetime
import logging
import time

from application.ports.metrics_repository import (
    MetricsRepository,
    DateRange,
    WorkoutRecord,
    SetRecord,
)
from backend.core.metrics.config import MetricsConfig
from backend.core.metrics.engine import compute_metrics_v2
from backend.core.metrics.bodyweight import resolve_body_mass
from backend.core.metrics.personal_records import PersonalRecord, compute_personal_records
from backend.core.metrics.records import ServiceOutput
from backend.core.metrics.rest_derivers import (
    RestSummary,
    TimingValidation,
    summarize_rest,
    validate_timing,
    workout_rest_intervals,
)
from backend.core.metrics.time_period_averages import (
    PeriodAverages,
    calculate_time_period_averages,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ALL_TIME_START = date(2020, 1, 1)


class MetricsError(Exception):
    """Base error for the metrics service."""


class MissingUserError(MetricsError):
    """Raised when metrics are requested without an authenticated user."""

    def __init__(self, message: str = "No authenticated user for metrics request"):
        super().__init__(message)
        self.message = message


@dataclass
class SourceRecords:
    """Raw records fetched for one request."""
    workouts: List[WorkoutRecord]
    sets: List[SetRecord]
    bodyweight_kg: Optional[float] = None


@dataclass
class RestAnalytics:
    """Rest statistics and timing checks over a range."""
    summary: RestSummary
    validation: TimingValidation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "validation": self.validation.to_dict(),
        }


class MetricsService:
    """Fetches records for a user and computes metrics from them."""

    def __init__(
        self,
        repository: MetricsRepository,
        config: Optional[MetricsConfig] = None,
    ):
        self._repository = repository
        self._config = config or MetricsConfig()

    @property
    def config(self) -> MetricsConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def _safe(self, what: str, call: Callable[[], T], fallback: T) -> T:
        try:
            return call()
        except Exception as e:
            logger.exception(f"Metrics repository failed to {what}: {e}")
            return fallback

    def fetch_records(
        self,
        user_id: str,
        date_range: DateRange,
        exercise_id: Optional[str] = None,
        *,
        with_bodyweight: Optional[bool] = None,
    ) -> SourceRecords:
        """
        Fetch workouts, sets and (optionally) body mass for a user.

        Raises:
            MissingUserError: If user_id is empty
        """
        if not user_id:
            raise MissingUserError()

        workouts = self._safe(
            "fetch workouts",
            lambda: self._repository.get_workouts(date_range, user_id),
            [],
        )
        sets: List[SetRecord] = []
        if workouts:
            workout_ids = [w.id for w in workouts]
            sets = self._safe(
                "fetch sets",
                lambda: self._repository.get_sets(workout_ids, user_id, exercise_id),
                [],
            )

        if with_bodyweight is None:
            with_bodyweight = self._config.include_bodyweight_loads
        bodyweight_kg = None
        if with_bodyweight:
            bodyweight_kg = self._safe(
                "fetch body mass",
                lambda: self._repository.get_bodyweight_kg(user_id),
                None,
            )

        return SourceRecords(workouts=list(workouts), sets=list(sets), bodyweight_kg=bodyweight_kg)

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def get_metrics_v2(
        self,
        user_id: str,
        date_range: DateRange,
        exercise_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceOutput:
        """
        Compute the v2 metrics envelope for a user and date range.

        Raises:
            MissingUserError: If user_id is empty
        """
        started = time.perf_counter()
        records = self.fetch_records(user_id, date_range, exercise_id)
        output = compute_metrics_v2(
            records.workouts,
            records.sets,
            config=self._config,
            bodyweight_kg=records.bodyweight_kg,
            now=now,
        )
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            f"metrics-v2.fetch user={user_id} range={date_range.start}..{date_range.end} "
            f"workouts={len(records.workouts)} sets={len(records.sets)} "
            f"rest_quality={output.meta.rest_quality.quality} elapsed_ms={elapsed_ms:.1f}"
        )
        return output

    def get_personal_records(
        self,
        user_id: str,
        date_range: DateRange,
        exercise_id: Optional[str] = None,
    ) -> List[PersonalRecord]:
        """Personal records per exercise within the range."""
        records = self.fetch_records(user_id, date_range, exercise_id)
        load = None
        if self._config.include_bodyweight_loads:
            load = resolve_body_mass(records.bodyweight_kg, self._config.default_bodyweight_kg)
        return compute_personal_records(
            records.workouts,
            records.sets,
            load=load,
            exercise_id=exercise_id,
        )

    def get_time_period_averages(
        self,
        user_id: str,
        exercise_id: Optional[str] = None,
        reference: Optional[datetime] = None,
    ) -> Dict[str, PeriodAverages]:
        """Per-workout averages for this week, this month, last 7/30 days and all time."""
        today = (reference.date() if reference else date.today())
        records = self.fetch_records(
            user_id,
            DateRange(start=ALL_TIME_START, end=today),
            exercise_id,
            with_bodyweight=True,
        )
        bodyweight = resolve_body_mass(records.bodyweight_kg, self._config.default_bodyweight_kg)
        return calculate_time_period_averages(
            records.workouts,
            records.sets,
            reference=reference,
            bodyweight_kg=bodyweight.body_mass_kg,
        )

    def get_rest_analytics(
        self,
        user_id: str,
        date_range: DateRange,
        exercise_id: Optional[str] = None,
    ) -> RestAnalytics:
        """Rest statistics (per-workout intervals) and timing validation for the range."""
        records = self.fetch_records(user_id, date_range, exercise_id, with_bodyweight=False)
        by_workout: Dict[str, List[SetRecord]] = {}
        for s in records.sets:
            by_workout.setdefault(s.workout_id, []).append(s)

        rest_seconds: List[float] = []
        for workout_sets in by_workout.values():
            rest_seconds.extend(ms / 1000.0 for ms in workout_rest_intervals(workout_sets))

        return RestAnalytics(
            summary=summarize_rest(rest_seconds),
            validation=validate_timing(records.sets),
        )
