"""
Metrics Repository Interface (Port).

This module defines the read-only interface the metrics engine uses to fetch
raw workout and set records. Implementations must return the same record
shape regardless of which columns the underlying schema exposes: when the
optional timing columns are missing, sets are returned with
``timing_quality="legacy"`` instead of omitting the field.
"""
from typing import Protocol, Optional, List
from dataclasses import dataclass
from datetime import date


TIMING_ACTUAL = "actual"
TIMING_LEGACY = "legacy"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range used to select workouts."""
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class WorkoutRecord:
    """A logged workout session."""
    id: str
    started_at: str  # ISO timestamp
    duration_min: float = 0.0
    ended_at: Optional[str] = None


@dataclass(frozen=True)
class SetRecord:
    """A single logged set. Immutable input to the engine."""
    id: str
    workout_id: str
    exercise_id: str = ""
    exercise_name: str = ""
    weight_kg: float = 0.0
    reps: int = 0
    rest_time_sec: Optional[float] = None  # legacy, user-entered or estimated
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    performed_at: Optional[str] = None
    is_bodyweight: bool = False
    is_warmup: bool = False
    load_factor: Optional[float] = None
    duration_sec: Optional[float] = None
    timing_quality: str = TIMING_LEGACY

    @property
    def has_actual_timing(self) -> bool:
        """True when both timestamps needed for corrected rest are present."""
        return bool(self.started_at) and bool(self.completed_at)


class MetricsRepository(Protocol):
    """
    Interface for fetching the raw records the metrics engine consumes.

    All methods are read-only. Implementations should never raise for
    missing optional columns; they degrade to the legacy record shape.
    """

    def get_workouts(
        self,
        date_range: DateRange,
        user_id: str,
    ) -> List[WorkoutRecord]:
        """
        Get the user's workouts started within the date range.

        Args:
            date_range: Inclusive start/end dates
            user_id: Owner of the workouts

        Returns:
            Workouts ordered by start time ascending
        """
        ...

    def get_sets(
        self,
        workout_ids: List[str],
        user_id: str,
        exercise_id: Optional[str] = None,
    ) -> List[SetRecord]:
        """
        Get the completed sets belonging to the given workouts.

        Args:
            workout_ids: Workouts to fetch sets for
            user_id: Owner of the workouts
            exercise_id: Optional filter to a single exercise

        Returns:
            Sets for the workouts (order not guaranteed)
        """
        ...

    def get_bodyweight_kg(self, user_id: str) -> Optional[float]:
        """
        Get the user's recorded body mass in kilograms.

        Returns:
            Body mass, or None if the user never recorded one
        """
        ...
