"""
Fake Repository Implementations for Testing.

This package provides in-memory fake implementations of repository interfaces
for fast, isolated testing. No database or external dependencies required.

Features:
- Fakes implement the same Protocol interfaces as real implementations
- Supports seeding with test data
- Supports reset() for test isolation
- Builders and factory functions for common test scenarios

Usage:
    from tests.fakes import FakeMetricsRepository, make_workout, make_set

    repo = FakeMetricsRepository()
    repo.seed_workouts("user1", [make_workout("w1", "2024-01-02T10:00:00Z")])
    repo.seed_sets([make_set("s1", "w1", weight_kg=100, reps=5)])
"""
from typing import Optional, List
from datetime import datetime, timedelta, timezone

from application.ports.metrics_repository import (
    WorkoutRecord,
    SetRecord,
    TIMING_ACTUAL,
    TIMING_LEGACY,
)
from tests.fakes.metrics_repository import FakeMetricsRepository


# =============================================================================
# Record Builders
# =============================================================================


def make_workout(
    workout_id: str,
    started_at: str,
    duration_min: float = 60,
    **kwargs,
) -> WorkoutRecord:
    """Build a WorkoutRecord with sensible defaults."""
    return WorkoutRecord(id=workout_id, started_at=started_at, duration_min=duration_min, **kwargs)


def make_set(
    set_id: str,
    workout_id: str,
    *,
    weight_kg: float = 100,
    reps: int = 5,
    exercise: str = "bench-press",
    rest_time_sec: Optional[float] = None,
    started_at: Optional[str] = None,
    completed_at: Optional[str] = None,
    **kwargs,
) -> SetRecord:
    """Build a SetRecord; timing quality follows the timestamps given."""
    timing = TIMING_ACTUAL if started_at and completed_at else TIMING_LEGACY
    return SetRecord(
        id=set_id,
        workout_id=workout_id,
        exercise_id=exercise,
        exercise_name=kwargs.pop("exercise_name", exercise.replace("-", " ").title()),
        weight_kg=weight_kg,
        reps=reps,
        rest_time_sec=rest_time_sec,
        started_at=started_at,
        completed_at=completed_at,
        timing_quality=kwargs.pop("timing_quality", timing),
        **kwargs,
    )


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def make_timed_sets(
    workout_id: str,
    start: str,
    work_sec: List[float],
    rest_sec: List[float],
    *,
    weight_kg: float = 100,
    reps: int = 5,
    prefix: str = "s",
) -> List[SetRecord]:
    """
    Build sets with actual start/completion timestamps.

    ``rest_sec[i]`` is the gap between set i and set i+1, so it must have
    one element fewer than ``work_sec``.
    """
    cursor = datetime.fromisoformat(start.replace("Z", "+00:00")).astimezone(timezone.utc)
    sets = []
    for i, work in enumerate(work_sec):
        begin = cursor
        end = begin + timedelta(seconds=work)
        sets.append(make_set(
            f"{prefix}{i + 1}",
            workout_id,
            weight_kg=weight_kg,
            reps=reps,
            started_at=_iso(begin),
            completed_at=_iso(end),
            duration_sec=work,
        ))
        if i < len(rest_sec):
            cursor = end + timedelta(seconds=rest_sec[i])
    return sets


# =============================================================================
# Factory Functions
# =============================================================================


def create_metrics_repo(
    user_id: str = "test-user",
    *,
    bodyweight_kg: Optional[float] = None,
) -> FakeMetricsRepository:
    """
    Create a fake repository with two legacy-timed workouts on different days.

    - w1 on 2024-01-02: 2 bench sets at 100 kg x 5, rest 120 s and 180 s
    - w2 on 2024-01-03: 3 squat sets at 120 kg x 5, no stored rest
    """
    repo = FakeMetricsRepository()
    repo.seed_workouts(user_id, [
        make_workout("w1", "2024-01-02T10:00:00Z", duration_min=60),
        make_workout("w2", "2024-01-03T10:00:00Z", duration_min=45),
    ])
    repo.seed_sets([
        make_set("s1", "w1", weight_kg=100, reps=5, rest_time_sec=120),
        make_set("s2", "w1", weight_kg=100, reps=5, rest_time_sec=180),
        make_set("s3", "w2", weight_kg=120, reps=5, exercise="squat"),
        make_set("s4", "w2", weight_kg=120, reps=5, exercise="squat"),
        make_set("s5", "w2", weight_kg=120, reps=5, exercise="squat"),
    ])
    if bodyweight_kg is not None:
        repo.seed_bodyweight(user_id, bodyweight_kg)
    return repo


__all__ = [
    "FakeMetricsRepository",
    "make_workout",
    "make_set",
    "make_timed_sets",
    "create_metrics_repo",
]
