"""
Per-workout averages over standard calendar periods.

Periods are evaluated in business-timezone days relative to a reference date:
this week (from Monday), this month, last 7 days, last 30 days and all time.
"""
from typing import Optional, List, Dict, Any, Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
import math

from application.ports.metrics_repository import WorkoutRecord, SetRecord
from backend.core.metrics.bodyweight import DEFAULT_BODYWEIGHT_KG
from backend.core.metrics.day_context import BUSINESS_TIMEZONE, to_business_day


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class PeriodAverages:
    label: str
    start_date: Optional[str]
    end_date: str
    total_workouts: int = 0
    average_tonnage_per_workout: int = 0
    average_duration_per_workout: int = 0  # minutes
    average_sets_per_workout: int = 0
    average_reps_per_workout: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "periodLabel": self.label,
            "dateRange": {"startDate": self.start_date, "endDate": self.end_date},
            "totalWorkouts": self.total_workouts,
            "averageTonnagePerWorkout": self.average_tonnage_per_workout,
            "averageDurationPerWorkout": self.average_duration_per_workout,
            "averageSetsPerWorkout": self.average_sets_per_workout,
            "averageRepsPerWorkout": self.average_reps_per_workout,
        }


def _period_bounds(reference: date) -> Dict[str, tuple]:
    return {
        "this_week": ("This Week", reference - timedelta(days=reference.weekday())),
        "this_month": ("This Month", reference.replace(day=1)),
        "last_7_days": ("Last 7 Days", reference - timedelta(days=7)),
        "last_30_days": ("Last 30 Days", reference - timedelta(days=30)),
        "all_time": ("All Time", None),
    }


def calculate_time_period_averages(
    workouts: Iterable[WorkoutRecord],
    sets: Iterable[SetRecord],
    *,
    reference: Optional[datetime] = None,
    bodyweight_kg: float = DEFAULT_BODYWEIGHT_KG,
) -> Dict[str, PeriodAverages]:
    """
    Average tonnage, duration, sets and reps per workout for each period.

    Warm-up sets and sets without reps are excluded. Bodyweight sets logged
    without weight count at ``bodyweight_kg``. Averages are rounded to whole
    numbers.

    Returns:
        PeriodAverages keyed by ``this_week``, ``this_month``,
        ``last_7_days``, ``last_30_days`` and ``all_time``
    """
    reference = reference or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    ref_day = reference.astimezone(ZoneInfo(BUSINESS_TIMEZONE)).date()

    dated = []
    for w in workouts:
        day = to_business_day(w.started_at)
        if day is not None:
            dated.append((date.fromisoformat(day), w))

    sets_by_workout: Dict[str, List[SetRecord]] = {}
    for s in sets:
        if s.is_warmup or (s.reps or 0) <= 0:
            continue
        sets_by_workout.setdefault(s.workout_id, []).append(s)

    results = {}
    for key, (label, start) in _period_bounds(ref_day).items():
        in_period = [
            w for day, w in dated
            if day <= ref_day and (start is None or day >= start)
        ]
        results[key] = _averages(
            label,
            start.isoformat() if start else None,
            ref_day.isoformat(),
            in_period,
            sets_by_workout,
            bodyweight_kg,
        )
    return results


def _averages(
    label: str,
    start: Optional[str],
    end: str,
    workouts: List[WorkoutRecord],
    sets_by_workout: Dict[str, List[SetRecord]],
    bodyweight_kg: float,
) -> PeriodAverages:
    count = len(workouts)
    if count == 0:
        return PeriodAverages(label=label, start_date=start, end_date=end)

    tonnage = 0.0
    total_sets = 0
    total_reps = 0
    for w in workouts:
        for s in sets_by_workout.get(w.id, []):
            weight = s.weight_kg or 0.0
            if weight <= 0 and s.is_bodyweight:
                weight = bodyweight_kg
            tonnage += max(weight, 0.0) * s.reps
            total_sets += 1
            total_reps += s.reps
    duration = sum(max(w.duration_min or 0.0, 0.0) for w in workouts)

    return PeriodAverages(
        label=label,
        start_date=start,
        end_date=end,
        total_workouts=count,
        average_tonnage_per_workout=_round_half_up(tonnage / count),
        average_duration_per_workout=_round_half_up(duration / count),
        average_sets_per_workout=_round_half_up(total_sets / count),
        average_reps_per_workout=_round_half_up(total_reps / count),
    )
